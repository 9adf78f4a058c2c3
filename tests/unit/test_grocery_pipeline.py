from __future__ import annotations

import pytest

from meal_orchestrator.errors import GatewayError, RecoveryError
from meal_orchestrator.pipeline.grocery import (
    fallback_item,
    parse_grocery_items,
    polish_grocery_list,
)
from meal_orchestrator.pipeline.schemas import GroceryIngredient, GroceryPolishRequest

INGREDIENTS = [
    {"id": 1, "name": "garlic", "quantity": 4, "unit": "cloves"},
    {"id": 2, "name": "garlic", "quantity": 3, "unit": "cloves"},
    {"id": 3, "name": "flank steak", "quantity": 500, "unit": "g"},
    {"id": 4, "name": "broccoli", "quantity": 1, "unit": "head"},
    {"id": 5, "name": "olive oil", "quantity": 2, "unit": "tbsp"},
]


def _request(**overrides) -> GroceryPolishRequest:
    payload = {"ingredients": INGREDIENTS, **overrides}
    return GroceryPolishRequest.model_validate(payload)


def test_polish_batches_then_merges(gateway) -> None:
    gateway.push(
        {"items": [{"name": "Garlic", "displayQuantity": "1 head", "category": "Produce"}]},
        GatewayError("503 from model", transient=True),
        {"items": [{"name": "Olive oil", "displayQuantity": None, "category": ""}]},
        {
            "items": [
                {"name": "Garlic", "displayQuantity": "1 head", "category": "Produce"},
                {"name": "Flank steak", "displayQuantity": "500g", "category": "Protein"},
                {"name": "Broccoli", "displayQuantity": "1 head", "category": "Produce"},
                {"name": "Olive oil", "displayQuantity": "1 bottle", "category": "Pantry"},
            ]
        },
    )
    events = []

    result = polish_grocery_list(
        _request(), gateway=gateway, batch_size=2, on_progress=events.append
    )

    assert [item.name for item in result.items] == [
        "Garlic",
        "Flank steak",
        "Broccoli",
        "Olive oil",
    ]
    assert len(gateway.calls) == 4
    merge_prompt = gateway.calls[3]["conversation"][0].parts[0].text
    assert '"name": "flank steak"' in merge_prompt
    assert '"displayQuantity": "500 g"' in merge_prompt
    assert '"category": "Pantry"' in merge_prompt
    assert [(event.phase.value, event.current, event.total) for event in events] == [
        ("polishing", 0, 3),
        ("polishing", 1, 3),
        ("polishing", 2, 3),
        ("polishing", 3, 3),
        ("merging", 3, 3),
        ("complete", 3, 3),
    ]


def test_merge_failure_keeps_polished_list(gateway) -> None:
    gateway.push(
        {
            "items": [
                {"name": "Garlic", "displayQuantity": "1 head", "category": "Produce"},
                {"name": "Steak", "displayQuantity": "500g", "category": "Protein"},
            ]
        },
        "merge went wrong",
    )

    result = polish_grocery_list(
        _request(ingredients=INGREDIENTS[:3]), gateway=gateway, batch_size=5
    )

    assert [(item.name, item.display_quantity) for item in result.items] == [
        ("Garlic", "1 head"),
        ("Steak", "500g"),
    ]


def test_single_item_skips_merge_call(gateway) -> None:
    gateway.push({"items": [{"name": "Garlic", "displayQuantity": "1 head"}]})

    result = polish_grocery_list(
        _request(ingredients=INGREDIENTS[:2]), gateway=gateway, batch_size=5
    )

    assert len(result.items) == 1
    assert len(gateway.calls) == 1


def test_pantry_items_are_included_in_the_prompt(gateway) -> None:
    gateway.push({"items": [{"name": "Garlic", "displayQuantity": "1 head"}]})

    polish_grocery_list(
        _request(
            ingredients=INGREDIENTS[:1],
            pantryItems=[{"name": "garlic", "quantity": 2, "unit": "heads", "availability": "LOW"}],
        ),
        gateway=gateway,
        batch_size=5,
    )

    prompt = gateway.calls[0]["conversation"][0].parts[0].text
    assert "USER'S PANTRY" in prompt
    assert "- garlic: 2 heads (LOW)" in prompt


def test_unreachable_model_fails_the_job(gateway) -> None:
    gateway.push(*[GatewayError("down", transient=True) for _ in range(3)])

    with pytest.raises(GatewayError, match="unreachable for all 3 batches"):
        polish_grocery_list(_request(), gateway=gateway, batch_size=2)


def test_fallback_item_formats_quantity() -> None:
    steak = GroceryIngredient(id=3, name="flank steak", quantity=500, unit="g")
    lemon = GroceryIngredient(id=7, name="lemon", quantity=0.5)
    mystery = GroceryIngredient(id=8, name="salt")

    assert fallback_item(steak).display_quantity == "500 g"
    assert fallback_item(lemon).display_quantity == "0.5"
    assert fallback_item(mystery).display_quantity == "0"
    assert fallback_item(steak).category == "Pantry"


def test_parse_grocery_items_skips_bad_rows() -> None:
    items = parse_grocery_items(
        [
            {"name": "Eggs", "displayQuantity": 12, "category": "Dairy"},
            {"displayQuantity": "1"},
            "milk",
        ]
    )

    assert [(item.name, item.display_quantity, item.category) for item in items] == [
        ("Eggs", "12", "Dairy")
    ]


def test_parse_grocery_items_requires_a_list() -> None:
    with pytest.raises(RecoveryError):
        parse_grocery_items({"name": "Eggs"})


def test_request_requires_ingredients() -> None:
    with pytest.raises(ValueError):
        GroceryPolishRequest.model_validate({"ingredients": []})
