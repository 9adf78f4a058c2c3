from __future__ import annotations

import pytest

from meal_orchestrator.errors import GatewayError, RecoveryError
from meal_orchestrator.pipeline.recipe_edits import (
    customize_recipe,
    substitute_ingredient,
    update_shopping_list,
)
from meal_orchestrator.pipeline.schemas import (
    CustomizationRequest,
    ShoppingListUpdateRequest,
    SubstitutionRequest,
)

STEPS = [
    {"title": "Prep", "substeps": ["Mince the garlic.", "Pat the chicken dry."]},
    {"title": "Roast", "substeps": ["Roast the chicken for 35 minutes."]},
]


def _substitution() -> SubstitutionRequest:
    return SubstitutionRequest.model_validate(
        {
            "recipeName": "Lemon Garlic Chicken Thighs",
            "originalIngredient": {
                "name": "chicken thighs",
                "quantity": 8,
                "unit": "",
                "preparation": "skin-on",
            },
            "newIngredientName": "tofu",
            "steps": STEPS,
        }
    )


def _customization(**overrides) -> CustomizationRequest:
    payload = {
        "recipeName": "Lemon Garlic Chicken Thighs",
        "description": "Crispy roasted thighs.",
        "ingredients": [
            {
                "ingredientName": "chicken thighs",
                "quantity": 8,
                "unit": "",
                "preparation": "skin-on",
            },
            {"ingredientName": "garlic", "quantity": 4, "unit": "cloves"},
        ],
        "steps": STEPS,
        "customizationRequest": "make it spicy",
        **overrides,
    }
    return CustomizationRequest.model_validate(payload)


def test_substitution_returns_updated_recipe(gateway) -> None:
    gateway.push(
        "```json\n"
        '{"updatedRecipeName": "Lemon Garlic Tofu", '
        '"updatedIngredient": {"name": "tofu", "quantity": 400, "unit": "g", "preparation": null}, '
        '"updatedSteps": [{"title": "Prep", "substeps": ["Press the tofu."]}], "notes": null}\n'
        "```"
    )

    result = substitute_ingredient(_substitution(), gateway=gateway)

    assert result.updated_recipe_name == "Lemon Garlic Tofu"
    assert result.updated_ingredient.quantity == 400.0
    assert result.updated_steps[0].substeps == ["Press the tofu."]
    prompt = gateway.calls[0]["conversation"][0].parts[0].text
    assert 'ORIGINAL INGREDIENT: 8  chicken thighs (preparation: "skin-on")' in prompt
    assert "NEW INGREDIENT: tofu" in prompt
    assert "Step 2: Roast" in prompt


def test_substitution_with_invalid_structure_fails(gateway) -> None:
    gateway.push({"updatedRecipeName": "Tofu", "updatedSteps": []})

    with pytest.raises(RecoveryError, match="SubstitutionResult"):
        substitute_ingredient(_substitution(), gateway=gateway)


def test_substitution_propagates_gateway_errors(gateway) -> None:
    gateway.push(GatewayError("bad request", status=400))

    with pytest.raises(GatewayError):
        substitute_ingredient(_substitution(), gateway=gateway)


def test_customization_keeps_description_when_model_omits_it(gateway) -> None:
    gateway.push(
        {
            "updatedRecipeName": "Spicy Lemon Garlic Chicken",
            "updatedDescription": "",
            "ingredientsToAdd": [{"ingredientName": "chili flakes", "quantity": 1, "unit": "tsp"}],
            "ingredientsToRemove": None,
            "ingredientsToModify": [{"originalName": "garlic", "newQuantity": 6}],
            "updatedSteps": [{"title": "Prep", "substeps": ["Add chili flakes."]}],
            "changesSummary": "Added heat.",
        }
    )

    result = customize_recipe(
        _customization(previousRequests=["less salt"]), gateway=gateway
    )

    assert result.updated_description == "Crispy roasted thighs."
    assert result.ingredients_to_remove == []
    assert result.ingredients_to_modify[0].new_quantity == 6.0
    assert result.to_wire()["ingredientsToAdd"][0]["ingredientName"] == "chili flakes"
    prompt = gateway.calls[0]["conversation"][0].parts[0].text
    assert '1. "less salt"' in prompt
    assert "- 8 chicken thighs (skin-on)" in prompt
    assert 'REQUEST: "make it spicy"' in prompt


def test_customization_requires_changes_summary(gateway) -> None:
    gateway.push(
        {
            "updatedRecipeName": "Spicy Chicken",
            "updatedSteps": [{"title": "Prep", "substeps": ["Add chili."]}],
        }
    )

    with pytest.raises(RecoveryError):
        customize_recipe(_customization(), gateway=gateway)


def test_customization_without_json_fails(gateway) -> None:
    gateway.push("I would add some chili flakes.")

    with pytest.raises(RecoveryError, match="updatedRecipeName"):
        customize_recipe(_customization(), gateway=gateway)


def _update_request(**overrides) -> ShoppingListUpdateRequest:
    payload = {
        "recipeName": "Spicy Lemon Garlic Chicken",
        "currentItems": [
            {"name": "Garlic", "displayQuantity": "1 head", "category": "Produce"},
            {"name": "Chicken thighs", "displayQuantity": "8", "category": "Protein"},
        ],
        **overrides,
    }
    return ShoppingListUpdateRequest.model_validate(payload)


def test_shopping_update_without_changes_skips_the_model(gateway) -> None:
    result = update_shopping_list(_update_request(), gateway=gateway)

    assert [item.name for item in result.items] == ["Garlic", "Chicken thighs"]
    assert gateway.calls == []


def test_shopping_update_accepts_bare_array(gateway) -> None:
    gateway.push(
        "```json\n"
        '[{"name": "Garlic", "displayQuantity": "1 head", "category": "Produce"}, '
        '{"name": "Chili flakes", "displayQuantity": "1 jar", "category": "Spices"}]\n'
        "```"
    )

    result = update_shopping_list(
        _update_request(
            ingredientsToAdd=[{"ingredientName": "chili flakes", "quantity": 1, "unit": "tsp"}],
            ingredientsToRemove=[{"ingredientName": "chicken thighs", "quantity": 8}],
        ),
        gateway=gateway,
    )

    assert [item.name for item in result.items] == ["Garlic", "Chili flakes"]
    prompt = gateway.calls[0]["conversation"][0].parts[0].text
    assert 'REMOVE from "Spicy Lemon Garlic Chicken"' in prompt
    assert "  - 1 tsp chili flakes" in prompt


def test_shopping_update_accepts_items_object(gateway) -> None:
    gateway.push(
        'Updated list: {"items": [{"name": "Garlic", "displayQuantity": "2 heads", '
        '"category": "Produce"}]}'
    )

    result = update_shopping_list(
        _update_request(
            ingredientsToModify=[{"originalName": "garlic", "newName": "black garlic"}]
        ),
        gateway=gateway,
    )

    assert [(item.name, item.display_quantity) for item in result.items] == [
        ("Garlic", "2 heads")
    ]
    prompt = gateway.calls[0]["conversation"][0].parts[0].text
    assert 'name: "garlic" -> "black garlic"' in prompt


def test_shopping_update_with_unusable_answer_fails(gateway) -> None:
    gateway.push("no list today")

    with pytest.raises(RecoveryError):
        update_shopping_list(
            _update_request(ingredientsToRemove=[{"ingredientName": "garlic"}]),
            gateway=gateway,
        )
