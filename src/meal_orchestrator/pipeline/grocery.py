"""Grocery list polishing: batched cleanup followed by one merge pass."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from meal_orchestrator.errors import RecoveryError
from meal_orchestrator.llm.gateway import ModelGateway, complete_text
from meal_orchestrator.pipeline import prompts
from meal_orchestrator.pipeline.batching import merge_pass, process_in_batches
from meal_orchestrator.pipeline.progress import ProgressCallback, report
from meal_orchestrator.pipeline.schemas import (
    GroceryIngredient,
    GroceryPolishRequest,
    GroceryPolishResult,
    PolishedGroceryItem,
)
from meal_orchestrator.recovery import recover
from meal_orchestrator.storage.models import ProgressPhase

logger = logging.getLogger(__name__)


def polish_grocery_list(
    request: GroceryPolishRequest,
    *,
    gateway: ModelGateway,
    batch_size: int,
    on_progress: ProgressCallback | None = None,
) -> GroceryPolishResult:
    ingredients = request.ingredients
    total_batches = -(-len(ingredients) // batch_size)
    logger.info(
        "Grocery polish started ingredients=%d batches=%d", len(ingredients), total_batches
    )

    def _polish(batch: list[GroceryIngredient]) -> list[PolishedGroceryItem]:
        text = complete_text(
            gateway,
            prompts.POLISH_SYSTEM,
            prompts.polish_user(batch=batch, pantry_items=request.pantry_items),
        )
        return parse_grocery_items(recover(text, "items")["items"], sample=text)

    def _on_batch_done(done: int, total: int, succeeded: bool) -> None:
        report(
            on_progress,
            ProgressPhase.POLISHING,
            done,
            total,
            f"Polishing batch {done}/{total}",
        )

    report(on_progress, ProgressPhase.POLISHING, 0, total_batches, "Polishing grocery list...")
    polished, batch_report = process_in_batches(
        ingredients,
        batch_size,
        _polish,
        fallback_item,
        on_batch_done=_on_batch_done,
        preserve_count=False,
    )
    batch_report.raise_if_unreachable()

    report(
        on_progress, ProgressPhase.MERGING, total_batches, total_batches, "Merging duplicates..."
    )
    merged = merge_pass(polished, lambda items: _merge(gateway, items))

    report(on_progress, ProgressPhase.COMPLETE, total_batches, total_batches, "Grocery list ready")
    logger.info("Grocery polish finished items=%d", len(merged))
    return GroceryPolishResult(items=merged)


def fallback_item(ingredient: GroceryIngredient) -> PolishedGroceryItem:
    display = f"{prompts.format_quantity(ingredient.quantity)} {ingredient.unit}".strip()
    return PolishedGroceryItem(
        name=ingredient.name,
        display_quantity=display or "1",
        category="Pantry",
    )


def parse_grocery_items(rows: Any, *, sample: str = "") -> list[PolishedGroceryItem]:
    """Validate model-produced shopping rows, skipping unusable entries."""
    if not isinstance(rows, list):
        raise RecoveryError('"items" is not a list', sample=sample[:500])
    items: list[PolishedGroceryItem] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        try:
            items.append(PolishedGroceryItem.model_validate(row))
        except ValidationError:
            logger.debug("Skipping invalid grocery row row=%s", row)
    return items


def _merge(gateway: ModelGateway, items: list[PolishedGroceryItem]) -> list[PolishedGroceryItem]:
    text = complete_text(gateway, prompts.POLISH_SYSTEM, prompts.merge_user(items))
    return parse_grocery_items(recover(text, "items")["items"], sample=text)
