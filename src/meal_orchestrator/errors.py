"""Error taxonomy shared by the gateway, recovery engine, tool loop and jobs."""

from __future__ import annotations


class MealOrchestratorError(RuntimeError):
    """Base class for orchestration failures."""


class GatewayError(MealOrchestratorError):
    """Transport or protocol failure talking to the generative model."""

    def __init__(self, message: str, *, transient: bool = False, status: int | None = None) -> None:
        super().__init__(message)
        self.transient = transient
        self.status = status


class EmptyResponseError(MealOrchestratorError):
    """The model answered without any usable content."""


class RecoveryError(MealOrchestratorError):
    """No JSON object with the expected key could be recovered from model text."""

    def __init__(self, message: str, *, sample: str = "") -> None:
        super().__init__(message)
        self.sample = sample


class IterationBudgetExceeded(MealOrchestratorError):
    """The tool loop ran out of iterations without a final answer."""

    def __init__(self, max_iterations: int) -> None:
        super().__init__(
            f"Max tool iterations ({max_iterations}) exceeded - "
            "model kept calling tools without producing final output"
        )
        self.max_iterations = max_iterations


class ToolDispatchError(MealOrchestratorError):
    """A single tool call failed; reported back to the model, never raised to callers."""


class InvalidTransition(MealOrchestratorError):
    """A job status change that the lifecycle does not allow."""


class JobsClientError(MealOrchestratorError):
    """HTTP failure talking to the jobs API from the client side."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status
