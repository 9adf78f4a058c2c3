"""Pantry categorization of purchased shopping items."""

from __future__ import annotations

import logging
import re
from typing import Any

from meal_orchestrator.errors import RecoveryError
from meal_orchestrator.llm.gateway import ModelGateway, complete_text
from meal_orchestrator.pipeline import prompts
from meal_orchestrator.pipeline.batching import process_in_batches
from meal_orchestrator.pipeline.progress import ProgressCallback, report
from meal_orchestrator.pipeline.schemas import (
    CategorizedPantryItem,
    PantryCategorizeRequest,
    PantryCategorizeResult,
    ShoppingItemForPantry,
)
from meal_orchestrator.recovery import recover
from meal_orchestrator.storage.models import ProgressPhase

logger = logging.getLogger(__name__)

_WEIGHT_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*(g|kg|ml|l)$", re.IGNORECASE)
_COUNT_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s+(.+)$")
_NUMBER_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)$")

# First matching keyword wins.
CATEGORY_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("produce", "vegetable", "fruit"), "PRODUCE"),
    (("protein", "meat", "seafood", "fish"), "PROTEIN"),
    (("dairy", "milk", "cheese"), "DAIRY"),
    (("pantry", "dry", "grain", "pasta"), "DRY_GOODS"),
    (("spice", "herb", "seasoning"), "SPICE"),
    (("oil", "vinegar"), "OILS"),
    (("condiment", "sauce"), "CONDIMENT"),
    (("frozen",), "FROZEN"),
    (("bakery", "bread"), "DRY_GOODS"),
)
PERISHABLE_CATEGORIES = frozenset({"PRODUCE", "PROTEIN", "DAIRY"})
STOCK_LEVEL_CATEGORIES = frozenset({"SPICE", "OILS", "CONDIMENT"})
FALLBACK_EXPIRY_DAYS = 7


def categorize_pantry_items(
    request: PantryCategorizeRequest,
    *,
    gateway: ModelGateway,
    on_progress: ProgressCallback | None = None,
) -> PantryCategorizeResult:
    items = request.items
    total = len(items)
    logger.info("Pantry categorization started items=%d", total)
    report(on_progress, ProgressPhase.CATEGORIZING, 0, total, "Categorizing items...")

    def _categorize(batch: list[ShoppingItemForPantry]) -> list[CategorizedPantryItem]:
        text = complete_text(gateway, prompts.CATEGORIZE_SYSTEM, prompts.categorize_user(batch))
        rows = recover(text, "items")["items"]
        if not isinstance(rows, list) or not rows:
            raise RecoveryError("Categorization returned no items", sample=text[:500])

        categorized = [item for item in (normalize_item(row) for row in rows) if item is not None]
        seen = {item.id for item in categorized}
        for original in batch:
            if original.id not in seen:
                logger.warning(
                    "Item missing from categorization id=%d name=%s; using fallback",
                    original.id,
                    original.name,
                )
                categorized.append(create_fallback_item(original))
        return categorized

    categorized, batch_report = process_in_batches(
        items,
        total,
        _categorize,
        create_fallback_item,
        preserve_count=False,
    )
    batch_report.raise_if_unreachable()

    report(on_progress, ProgressPhase.COMPLETE, total, total, "Categorization complete")
    logger.info("Pantry categorization finished items=%d", len(categorized))
    return PantryCategorizeResult(items=categorized)


def normalize_item(row: Any) -> CategorizedPantryItem | None:
    """Coerce one model-produced row; rows without a usable id are dropped."""
    if not isinstance(row, dict):
        return None
    try:
        item_id = int(row.get("id"))
    except (TypeError, ValueError):
        logger.debug("Dropping categorized row without id row=%s", row)
        return None

    tracking_style = str(row.get("trackingStyle") or "PRECISE")
    expiry = row.get("expiryDays")
    return CategorizedPantryItem(
        id=item_id,
        name=str(row.get("name") or ""),
        quantity=_positive_number(row.get("quantity")),
        unit=str(row.get("unit") or "UNITS"),
        category=str(row.get("category") or "OTHER"),
        tracking_style=tracking_style,
        stock_level=(row.get("stockLevel") or "FULL") if tracking_style == "STOCK_LEVEL" else None,
        expiry_days=_int_or_none(expiry),
        perishable=bool(row.get("perishable")),
    )


def create_fallback_item(item: ShoppingItemForPantry) -> CategorizedPantryItem:
    quantity, unit = parse_quantity_from_display(item.polished_display_quantity)
    category = map_shopping_category(item.shopping_category)
    perishable = category in PERISHABLE_CATEGORIES
    tracking_style = "STOCK_LEVEL" if category in STOCK_LEVEL_CATEGORIES else "PRECISE"
    return CategorizedPantryItem(
        id=item.id,
        name=item.name,
        quantity=quantity,
        unit=unit,
        category=category,
        tracking_style=tracking_style,
        stock_level="FULL" if tracking_style == "STOCK_LEVEL" else None,
        expiry_days=FALLBACK_EXPIRY_DAYS if perishable else None,
        perishable=perishable,
    )


def parse_quantity_from_display(display: str) -> tuple[float, str]:
    """Read a quantity and pantry unit from strings like `500g`, `1.5 kg`, `2 pieces` or `3`."""
    text = (display or "").strip()
    if not text:
        return 1.0, "UNITS"

    weight = _WEIGHT_PATTERN.match(text)
    if weight:
        quantity = float(weight.group(1))
        unit = weight.group(2).lower()
        if unit == "kg":
            return quantity * 1000, "GRAMS"
        if unit == "l":
            return quantity * 1000, "MILLILITERS"
        if unit == "g":
            return quantity, "GRAMS"
        return quantity, "MILLILITERS"

    counted = _COUNT_PATTERN.match(text)
    if counted:
        quantity = float(counted.group(1))
        unit_text = counted.group(2).lower()
        if "bunch" in unit_text:
            return quantity, "BUNCH"
        if "piece" in unit_text or "fillet" in unit_text:
            return quantity, "PIECES"
        return quantity, "UNITS"

    number = _NUMBER_PATTERN.match(text)
    if number:
        return float(number.group(1)), "UNITS"
    return 1.0, "UNITS"


def map_shopping_category(shopping_category: str) -> str:
    lowered = (shopping_category or "").lower()
    for keywords, category in CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return "OTHER"


def _positive_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1.0
    return number if number else 1.0


def _int_or_none(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
