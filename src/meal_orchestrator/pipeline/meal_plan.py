"""Meal plan generation: tool-driven planning, then batched recipe construction."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from meal_orchestrator.config.settings import Settings
from meal_orchestrator.errors import RecoveryError
from meal_orchestrator.graph.loop import ToolLoop
from meal_orchestrator.llm.gateway import ModelGateway, complete_text
from meal_orchestrator.pipeline import prompts
from meal_orchestrator.pipeline.batching import process_in_batches
from meal_orchestrator.pipeline.progress import ProgressCallback, report
from meal_orchestrator.pipeline.schemas import (
    ComposedMeal,
    CookingStep,
    MealOutline,
    MealPlanRequest,
    MealPlanResult,
    RecipeIngredient,
)
from meal_orchestrator.recovery import recover
from meal_orchestrator.retrieval.recipes import RecipeCatalog
from meal_orchestrator.storage.models import ProgressPhase

logger = logging.getLogger(__name__)

DEFAULT_SELECTION_COUNT = 6
DISTINCT_SELECTION_COUNT = 4
PROTEIN_TAGS = ("chicken", "beef", "pork", "seafood", "fish", "vegetarian", "tofu")
FORMAT_TAGS = ("bowl", "sandwich", "burger", "taco", "wrap", "pasta", "soup", "stew", "salad")


def generate_meal_plan(
    request: MealPlanRequest,
    *,
    gateway: ModelGateway,
    tool_loop: ToolLoop,
    catalog: RecipeCatalog,
    settings: Settings,
    on_progress: ProgressCallback | None = None,
) -> MealPlanResult:
    target_servings = request.preferences.target_servings if request.preferences else 2
    num_meals = request.num_meals or settings.default_num_meals
    logger.info("Meal plan started meals=%d servings=%d", num_meals, target_servings)

    outlines = plan_meals(
        request,
        tool_loop=tool_loop,
        num_meals=num_meals,
        target_servings=target_servings,
        max_iterations=settings.plan_max_iterations,
        on_progress=on_progress,
    )
    if len(outlines) < num_meals:
        logger.warning(
            "Planning returned fewer outlines expected=%d got=%d", num_meals, len(outlines)
        )

    meals = build_meals(
        outlines,
        gateway=gateway,
        catalog=catalog,
        target_servings=target_servings,
        batch_size=settings.build_batch_size,
        on_progress=on_progress,
    )
    selections = select_default_six(meals)
    report(on_progress, ProgressPhase.COMPLETE, len(meals), len(meals), "Generation complete")
    logger.info("Meal plan finished meals=%d defaults=%s", len(meals), selections)
    return MealPlanResult(recipes=meals, default_selections=selections)


def plan_meals(
    request: MealPlanRequest,
    *,
    tool_loop: ToolLoop,
    num_meals: int,
    target_servings: int,
    max_iterations: int,
    on_progress: ProgressCallback | None = None,
) -> list[MealOutline]:
    """Single tool-loop stage; any failure propagates and fails the job."""
    report(on_progress, ProgressPhase.PLANNING, 0, 1, "Planning meals...")
    text = tool_loop.run(
        prompts.planning_system(
            num_meals=num_meals,
            target_servings=target_servings,
            preferences=request.preferences,
            recent_recipes=request.recent_recipe_hashes,
        ),
        prompts.planning_user(num_meals=num_meals, pantry_items=request.pantry_items),
        max_iterations,
        expected_key="meals",
    )
    report(on_progress, ProgressPhase.PLANNING, 1, 1, "Planning complete")

    outlines = _validate_rows(recover(text, "meals")["meals"], MealOutline)
    if not outlines:
        raise RecoveryError("Planning returned no usable meal outlines", sample=text[:500])
    return outlines


def build_meals(
    outlines: list[MealOutline],
    *,
    gateway: ModelGateway,
    catalog: RecipeCatalog,
    target_servings: int,
    batch_size: int,
    on_progress: ProgressCallback | None = None,
) -> list[ComposedMeal]:
    total = len(outlines)
    system_instruction = prompts.build_system(target_servings=target_servings)

    def _construct(batch: list[MealOutline]) -> list[ComposedMeal]:
        source_ids = [source_id for outline in batch for source_id in outline.source_recipe_ids]
        sources = {recipe.source_id: recipe for recipe in catalog.get_many(source_ids)}
        text = complete_text(
            gateway,
            system_instruction,
            prompts.build_user(outlines=batch, sources=sources, target_servings=target_servings),
        )
        rows = recover(text, "meals")["meals"]
        if not isinstance(rows, list):
            raise RecoveryError('"meals" is not a list', sample=text[:500])
        return [ComposedMeal.model_validate(row) for row in rows]

    def _fallback(outline: MealOutline) -> ComposedMeal:
        return fallback_meal(outline, catalog=catalog, target_servings=target_servings)

    def _on_batch_done(done: int, total_batches: int, succeeded: bool) -> None:
        built = min(done * batch_size, total)
        report(
            on_progress,
            ProgressPhase.BUILDING,
            built,
            total,
            f"Building recipes {built}/{total}",
        )

    report(on_progress, ProgressPhase.BUILDING, 0, total, "Building recipe cards...")
    meals, batch_report = process_in_batches(
        outlines,
        batch_size,
        _construct,
        _fallback,
        on_batch_done=_on_batch_done,
    )
    batch_report.raise_if_unreachable()
    if batch_report.degraded:
        logger.warning(
            "Recipe construction degraded failed_batches=%s", batch_report.failed_batches
        )
    return meals


def fallback_meal(
    outline: MealOutline,
    *,
    catalog: RecipeCatalog,
    target_servings: int,
) -> ComposedMeal:
    """Schema-valid meal assembled from the outline and its source recipes."""
    ingredients: list[RecipeIngredient] = []
    for recipe in catalog.get_many(outline.source_recipe_ids):
        for item in recipe.ingredients:
            ingredients.append(
                RecipeIngredient(
                    ingredient_name=item.name,
                    quantity=item.quantity,
                    unit=item.unit or "",
                    preparation=item.preparation,
                )
            )

    components = [
        part
        for part in (outline.components.main, outline.components.carb, outline.components.veggie)
        if part
    ]
    substeps = [f"Prepare the {component}." for component in components] or [
        f"Prepare {outline.name} following the source recipes."
    ]
    return ComposedMeal(
        name=outline.name,
        description=outline.description,
        servings=target_servings,
        prep_time_minutes=0,
        cook_time_minutes=outline.estimated_time or 0,
        ingredients=ingredients,
        steps=[CookingStep(title="Instructions", substeps=substeps)],
        tags=outline.tags,
        uses_expiring_ingredients=outline.uses_expiring_ingredients,
        expiring_ingredients_used=outline.expiring_ingredients_used,
        source_recipe_ids=outline.source_recipe_ids,
        fallback=True,
    )


def select_default_six(meals: list[ComposedMeal]) -> list[int]:
    """Pick default meal indexes, favoring expiring ingredients and protein/format variety."""
    selected: list[int] = []
    used_proteins: set[str] = set()
    used_formats: set[str] = set()

    expiring_first = sorted(
        enumerate(meals),
        key=lambda entry: 0 if entry[1].uses_expiring_ingredients else 1,
    )
    for index, meal in expiring_first:
        if len(selected) >= DEFAULT_SELECTION_COUNT:
            break
        tags = [tag.lower() for tag in meal.tags]
        protein = next((tag for tag in tags if tag in PROTEIN_TAGS), "other")
        meal_format = next((tag for tag in tags if tag in FORMAT_TAGS), "other")

        if len(selected) < DISTINCT_SELECTION_COUNT and (
            protein in used_proteins or meal_format in used_formats
        ):
            continue

        selected.append(index)
        used_proteins.add(protein)
        used_formats.add(meal_format)

    for index in range(len(meals)):
        if len(selected) >= DEFAULT_SELECTION_COUNT:
            break
        if index not in selected:
            selected.append(index)

    return selected[:DEFAULT_SELECTION_COUNT]


def _validate_rows(rows: Any, model: type[MealOutline]) -> list[MealOutline]:
    if not isinstance(rows, list):
        return []
    outlines: list[MealOutline] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            outlines.append(model.model_validate(row))
        except ValidationError as exc:
            logger.warning("Skipping invalid meal outline reason=%s", exc.errors()[:1])
    return outlines
