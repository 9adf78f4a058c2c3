"""FastAPI app entrypoint for meal-orchestrator."""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from contextlib import asynccontextmanager
from typing import Any, Callable, TypeVar

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from meal_orchestrator.config.logging import configure_logging
from meal_orchestrator.config.settings import Settings, get_settings
from meal_orchestrator.errors import MealOrchestratorError
from meal_orchestrator.jobs import JOB_KINDS, JobRegistry, JobRunner, build_job_kinds
from meal_orchestrator.llm.gateway import GeminiGateway, ModelGateway
from meal_orchestrator.pipeline.recipe_edits import (
    customize_recipe,
    substitute_ingredient,
    update_shopping_list,
)
from meal_orchestrator.pipeline.schemas import (
    CustomizationRequest,
    ShoppingListUpdateRequest,
    SubstitutionRequest,
    WireModel,
)
from meal_orchestrator.retrieval.recipes import RecipeCatalog
from meal_orchestrator.storage.base import JobStore
from meal_orchestrator.storage.memory import InMemoryJobStore
from meal_orchestrator.storage.postgres import PostgresJobStore
from meal_orchestrator.tools import list_tools

logger = logging.getLogger(__name__)

RequestT = TypeVar("RequestT")


def _store_factory(settings: Settings) -> Callable[[str], JobStore]:
    if settings.database_url:
        return lambda kind: PostgresJobStore(settings.database_url, kind)
    return lambda kind: InMemoryJobStore()


def _ensure_runtime_state(
    app: FastAPI,
    *,
    settings: Settings,
    registry_override: JobRegistry | None,
    gateway_override: ModelGateway | None,
    catalog_override: RecipeCatalog | None,
    executor_override: Executor | None,
) -> None:
    if not hasattr(app.state, "settings"):
        app.state.settings = settings

    if not hasattr(app.state, "gateway"):
        app.state.gateway = (
            gateway_override
            if gateway_override is not None
            else GeminiGateway.from_settings(settings)
        )

    if not hasattr(app.state, "catalog"):
        app.state.catalog = (
            catalog_override
            if catalog_override is not None
            else RecipeCatalog.from_path(settings.resolved_recipes_path())
        )

    if not hasattr(app.state, "registry"):
        app.state.registry = (
            registry_override
            if registry_override is not None
            else JobRegistry.build(
                JOB_KINDS,
                _store_factory(settings),
                expiry_s=settings.job_expiry_s,
            )
        )

    if not hasattr(app.state, "runner"):
        kinds = build_job_kinds(
            gateway=app.state.gateway,
            catalog=app.state.catalog,
            settings=settings,
        )
        app.state.runner = JobRunner(
            app.state.registry,
            kinds,
            max_workers=settings.job_workers,
            executor=executor_override,
        )


def create_app(
    *,
    registry: JobRegistry | None = None,
    gateway: ModelGateway | None = None,
    catalog: RecipeCatalog | None = None,
    executor: Executor | None = None,
    settings_override: Settings | None = None,
) -> FastAPI:
    settings = settings_override or get_settings()
    configure_logging(settings.log_level)

    def _ensure(app: FastAPI) -> None:
        _ensure_runtime_state(
            app,
            settings=settings,
            registry_override=registry,
            gateway_override=gateway,
            catalog_override=catalog,
            executor_override=executor,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _ensure(app)
        yield
        app.state.runner.shutdown(wait=False)

    app_lifespan = lifespan if registry is None else None
    app = FastAPI(title=settings.app_name, lifespan=app_lifespan)

    # Keep test paths reliable when lifespan is not executed by the client.
    if registry is not None:
        _ensure(app)

    def _get_runner(request: Request) -> JobRunner:
        if not hasattr(request.app.state, "runner"):
            _ensure(request.app)
        return request.app.state.runner

    def _get_manager(request: Request, kind: str):
        manager = _get_runner(request).registry.get(kind)
        if manager is None:
            raise HTTPException(status_code=404, detail=f"Unknown job kind: {kind}")
        return manager

    def _run_edit(
        request: Request,
        payload: RequestT,
        stage: Callable[..., WireModel],
    ) -> dict[str, Any]:
        if not hasattr(request.app.state, "gateway"):
            _ensure(request.app)
        try:
            result = stage(payload, gateway=request.app.state.gateway)
        except MealOrchestratorError as exc:
            logger.warning("Recipe edit failed stage=%s error=%s", stage.__name__, exc)
            raise HTTPException(status_code=502, detail=str(exc)) from exc
        return result.to_wire()

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": settings.app_name}

    @app.get("/tools")
    def tools() -> dict[str, list[str]]:
        return {"tools": list_tools()}

    @app.post("/jobs/{kind}")
    def create_job(
        kind: str,
        request: Request,
        payload: dict[str, Any] = Body(...),
    ) -> dict[str, str]:
        runner = _get_runner(request)
        job_kind = runner.kinds.get(kind)
        if job_kind is None:
            raise HTTPException(status_code=404, detail=f"Unknown job kind: {kind}")
        try:
            job_request = job_kind.request_model.model_validate(payload)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors(include_url=False)) from exc

        job = runner.submit(kind, job_request)
        return {"jobId": job.id}

    @app.get("/jobs/{kind}/{job_id}")
    def get_job(kind: str, job_id: str, request: Request) -> dict[str, Any]:
        job = _get_manager(request, kind).get(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail="Job not found or expired")
        return job.status_view()

    @app.delete("/jobs/{kind}/{job_id}")
    def delete_job(kind: str, job_id: str, request: Request) -> dict[str, bool]:
        return {"deleted": _get_manager(request, kind).delete(job_id)}

    @app.post("/recipes/substitute")
    def substitute(payload: SubstitutionRequest, request: Request) -> dict[str, Any]:
        return _run_edit(request, payload, substitute_ingredient)

    @app.post("/recipes/customize")
    def customize(payload: CustomizationRequest, request: Request) -> dict[str, Any]:
        return _run_edit(request, payload, customize_recipe)

    @app.post("/grocery/update")
    def update_grocery(payload: ShoppingListUpdateRequest, request: Request) -> dict[str, Any]:
        return _run_edit(request, payload, update_shopping_list)

    return app


app = create_app()
