"""Single-call recipe edits served synchronously by the API.

Every stage makes exactly one structured model call. Gateway, recovery and
validation failures propagate to the caller; there is no silent fallback.
"""

from __future__ import annotations

import json
import logging
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from meal_orchestrator.errors import RecoveryError
from meal_orchestrator.llm.gateway import ModelGateway, complete_text
from meal_orchestrator.pipeline import prompts
from meal_orchestrator.pipeline.grocery import parse_grocery_items
from meal_orchestrator.pipeline.schemas import (
    CustomizationRequest,
    CustomizationResult,
    GroceryPolishResult,
    ShoppingListUpdateRequest,
    SubstitutionRequest,
    SubstitutionResult,
)
from meal_orchestrator.recovery import recover, strip_code_fences

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def substitute_ingredient(
    request: SubstitutionRequest,
    *,
    gateway: ModelGateway,
) -> SubstitutionResult:
    logger.info(
        "Substitution requested recipe=%s original=%s new=%s",
        request.recipe_name,
        request.original_ingredient.name,
        request.new_ingredient_name,
    )
    text = complete_text(gateway, prompts.EDIT_SYSTEM, prompts.substitution_user(request))
    result = _validate(SubstitutionResult, recover(text, "updatedRecipeName"), text)
    logger.info(
        "Substitution finished recipe=%s steps=%d",
        result.updated_recipe_name,
        len(result.updated_steps),
    )
    return result


def customize_recipe(
    request: CustomizationRequest,
    *,
    gateway: ModelGateway,
) -> CustomizationResult:
    logger.info(
        "Customization requested recipe=%s request=%s",
        request.recipe_name,
        request.customization_request,
    )
    text = complete_text(gateway, prompts.EDIT_SYSTEM, prompts.customization_user(request))
    result = _validate(CustomizationResult, recover(text, "updatedRecipeName"), text)
    if not result.updated_description:
        result.updated_description = request.description
    logger.info(
        "Customization finished recipe=%s add=%d remove=%d modify=%d",
        result.updated_recipe_name,
        len(result.ingredients_to_add),
        len(result.ingredients_to_remove),
        len(result.ingredients_to_modify),
    )
    return result


def update_shopping_list(
    request: ShoppingListUpdateRequest,
    *,
    gateway: ModelGateway,
) -> GroceryPolishResult:
    if not request.has_changes:
        logger.info("Shopping list update skipped recipe=%s; no changes", request.recipe_name)
        return GroceryPolishResult(items=request.current_items)

    text = complete_text(gateway, prompts.POLISH_SYSTEM, prompts.shopping_update_user(request))
    rows = _bare_array(text)
    if rows is None:
        rows = recover(text, "items")["items"]
    items = parse_grocery_items(rows, sample=text)
    logger.info(
        "Shopping list updated recipe=%s items=%d -> %d",
        request.recipe_name,
        len(request.current_items),
        len(items),
    )
    return GroceryPolishResult(items=items)


def _bare_array(text: str) -> list[Any] | None:
    stripped = strip_code_fences(text).strip()
    if not stripped.startswith("["):
        return None
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, list) else None


def _validate(model: type[ModelT], payload: dict[str, Any], text: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise RecoveryError(
            f"Invalid response structure for {model.__name__}: {exc.error_count()} errors",
            sample=text[:500],
        ) from exc
