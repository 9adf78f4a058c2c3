"""Conversation and model-turn types exchanged with the generative model."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

Role = Literal["user", "model"]


@dataclass(frozen=True)
class ToolCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Part:
    """One content part; exactly one of the three payloads is set."""

    text: str | None = None
    function_call: ToolCall | None = None
    function_response: dict[str, Any] | None = None
    function_name: str | None = None
    # Opaque token the model attaches to its own parts; echoed back verbatim.
    thought_signature: str | None = None

    def __post_init__(self) -> None:
        populated = sum(
            value is not None for value in (self.text, self.function_call, self.function_response)
        )
        if populated != 1:
            raise ValueError(
                "Part must carry exactly one of text, function_call, function_response"
            )
        if self.function_response is not None and not self.function_name:
            raise ValueError("function_response parts require function_name")

    @classmethod
    def from_text(cls, text: str) -> Part:
        return cls(text=text)

    @classmethod
    def from_call(cls, call: ToolCall) -> Part:
        return cls(function_call=call)

    @classmethod
    def from_response(cls, name: str, response: dict[str, Any]) -> Part:
        return cls(function_response=response, function_name=name)

    def to_wire(self) -> dict[str, Any]:
        if self.text is not None:
            wire: dict[str, Any] = {"text": self.text}
        elif self.function_call is not None:
            wire = {
                "functionCall": {
                    "name": self.function_call.name,
                    "args": self.function_call.args,
                }
            }
        else:
            wire = {
                "functionResponse": {
                    "name": self.function_name,
                    "response": self.function_response,
                }
            }
        if self.thought_signature:
            wire["thoughtSignature"] = self.thought_signature
        return wire


@dataclass(frozen=True)
class Turn:
    role: Role
    parts: tuple[Part, ...]

    def to_wire(self) -> dict[str, Any]:
        return {"role": self.role, "parts": [part.to_wire() for part in self.parts]}


def user_text(text: str) -> Turn:
    return Turn(role="user", parts=(Part.from_text(text),))


@dataclass(frozen=True)
class ModelTurn:
    """Model answer: either final text or a batch of tool calls."""

    text: str = ""
    tool_calls: tuple[ToolCall, ...] = ()
    finish_reason: str | None = None
    parts: tuple[Part, ...] = ()

    @property
    def wants_tools(self) -> bool:
        return bool(self.tool_calls)

    def as_turn(self) -> Turn:
        if self.parts:
            return Turn(role="model", parts=self.parts)
        if self.tool_calls:
            return Turn(role="model", parts=tuple(Part.from_call(call) for call in self.tool_calls))
        return Turn(role="model", parts=(Part.from_text(self.text),))
