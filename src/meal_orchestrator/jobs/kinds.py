"""Background job kinds: request model plus the pipeline that serves it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel

from meal_orchestrator.config.settings import Settings
from meal_orchestrator.graph.loop import ToolLoop
from meal_orchestrator.llm.gateway import ModelGateway
from meal_orchestrator.pipeline.grocery import polish_grocery_list
from meal_orchestrator.pipeline.meal_plan import generate_meal_plan
from meal_orchestrator.pipeline.pantry import categorize_pantry_items
from meal_orchestrator.pipeline.progress import ProgressCallback
from meal_orchestrator.pipeline.schemas import (
    GroceryPolishRequest,
    MealPlanRequest,
    PantryCategorizeRequest,
    WireModel,
)
from meal_orchestrator.retrieval.recipes import RecipeCatalog
from meal_orchestrator.tools.dispatcher import ToolDispatcher
from meal_orchestrator.tools.registry import build_registry

GENERATION = "generation"
GROCERY_POLISH = "grocery-polish"
CATEGORIZATION = "categorization"

JOB_KINDS = (GENERATION, GROCERY_POLISH, CATEGORIZATION)

JobHandler = Callable[[BaseModel, ProgressCallback], WireModel]


@dataclass(frozen=True)
class JobKind:
    name: str
    request_model: type[BaseModel]
    handler: JobHandler


def build_job_kinds(
    *,
    gateway: ModelGateway,
    catalog: RecipeCatalog,
    settings: Settings,
) -> dict[str, JobKind]:
    tool_loop = ToolLoop(gateway=gateway, dispatcher=ToolDispatcher(build_registry(catalog)))

    def _generate(request: MealPlanRequest, on_progress: ProgressCallback) -> WireModel:
        return generate_meal_plan(
            request,
            gateway=gateway,
            tool_loop=tool_loop,
            catalog=catalog,
            settings=settings,
            on_progress=on_progress,
        )

    def _polish(request: GroceryPolishRequest, on_progress: ProgressCallback) -> WireModel:
        return polish_grocery_list(
            request,
            gateway=gateway,
            batch_size=settings.polish_batch_size,
            on_progress=on_progress,
        )

    def _categorize(request: PantryCategorizeRequest, on_progress: ProgressCallback) -> WireModel:
        return categorize_pantry_items(request, gateway=gateway, on_progress=on_progress)

    return {
        GENERATION: JobKind(GENERATION, MealPlanRequest, _generate),
        GROCERY_POLISH: JobKind(GROCERY_POLISH, GroceryPolishRequest, _polish),
        CATEGORIZATION: JobKind(CATEGORIZATION, PantryCategorizeRequest, _categorize),
    }
