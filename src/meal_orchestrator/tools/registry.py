"""Tool registry for the recipe catalog and its Gemini function declarations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from pydantic import BaseModel

from meal_orchestrator.retrieval.recipes import RecipeCatalog
from meal_orchestrator.tools.schemas import (
    MAX_TOOL_RESULTS,
    GetRecipeDetailsInput,
    GetRecipeDetailsOutput,
    SearchRecipesInput,
    SearchRecipesOutput,
)

_DECLARATION_KEYS = {
    "type",
    "description",
    "properties",
    "items",
    "required",
    "enum",
    "nullable",
    "minimum",
    "maximum",
    "minItems",
    "maxItems",
    "format",
}


@dataclass(frozen=True)
class ToolSpec:
    input_model: type[BaseModel]
    output_model: type[BaseModel]
    fn: Callable[[Any], BaseModel]
    description: str


def build_registry(catalog: RecipeCatalog) -> dict[str, ToolSpec]:
    def _search_recipes(payload: SearchRecipesInput) -> SearchRecipesOutput:
        matches = catalog.search(
            query=payload.query,
            ingredients=payload.ingredients,
            cuisine=payload.cuisine,
            max_time=payload.max_time,
            tags=payload.tags,
            protein=payload.protein,
            limit=payload.limit,
        )
        return SearchRecipesOutput.model_validate(
            {"results": [recipe.summary() for recipe in matches[:MAX_TOOL_RESULTS]]}
        )

    def _get_recipe_details(payload: GetRecipeDetailsInput) -> GetRecipeDetailsOutput:
        recipes = catalog.get_many(payload.recipe_ids)
        return GetRecipeDetailsOutput.model_validate(
            {"results": [recipe.details() for recipe in recipes[:MAX_TOOL_RESULTS]]}
        )

    return {
        "search_recipes": ToolSpec(
            input_model=SearchRecipesInput,
            output_model=SearchRecipesOutput,
            fn=_search_recipes,
            description=(
                "Search the recipe database by various criteria. "
                f"Returns up to {MAX_TOOL_RESULTS} matching recipes."
            ),
        ),
        "get_recipe_details": ToolSpec(
            input_model=GetRecipeDetailsInput,
            output_model=GetRecipeDetailsOutput,
            fn=_get_recipe_details,
            description="Get full details for specific recipes by their IDs.",
        ),
    }


def list_tools() -> list[str]:
    return sorted(build_registry(RecipeCatalog()).keys())


def declarations(registry: dict[str, ToolSpec]) -> list[dict[str, Any]]:
    """Gemini `functionDeclarations` derived from each tool's input schema."""
    output: list[dict[str, Any]] = []
    for name, spec in registry.items():
        schema = spec.input_model.model_json_schema(by_alias=True)
        output.append(
            {
                "name": name,
                "description": spec.description,
                "parameters": _to_declaration_schema(schema),
            }
        )
    return output


def _to_declaration_schema(schema: dict[str, Any]) -> dict[str, Any]:
    variants = schema.get("anyOf")
    if isinstance(variants, list):
        concrete = [item for item in variants if item.get("type") != "null"]
        if len(concrete) == 1:
            merged = {**schema, **concrete[0]}
            merged.pop("anyOf", None)
            if len(concrete) != len(variants):
                merged["nullable"] = True
            schema = merged

    converted: dict[str, Any] = {}
    for key, value in schema.items():
        if key not in _DECLARATION_KEYS:
            continue
        if key == "properties":
            converted[key] = {
                prop: _to_declaration_schema(prop_schema) for prop, prop_schema in value.items()
            }
        elif key == "items":
            converted[key] = _to_declaration_schema(value)
        else:
            converted[key] = value
    return converted
