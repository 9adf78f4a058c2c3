"""Prompt builders for each pipeline stage."""

from __future__ import annotations

import json
from typing import Sequence

from meal_orchestrator.pipeline.schemas import (
    CustomizationRequest,
    GroceryIngredient,
    MealOutline,
    PantryItem,
    PolishedGroceryItem,
    ShoppingItemForPantry,
    ShoppingListUpdateRequest,
    SubstitutionRequest,
    UserPreferences,
)
from meal_orchestrator.retrieval.recipes import DatasetRecipe

GROCERY_CATEGORIES = "Produce, Protein, Dairy, Bakery, Pantry, Frozen, Condiments, Spices"


def planning_system(
    *,
    num_meals: int,
    target_servings: int,
    preferences: UserPreferences | None,
    recent_recipes: Sequence[str],
) -> str:
    preference_lines: list[str] = []
    if preferences is not None:
        if preferences.summary:
            preference_lines.append(f"Taste profile: {preferences.summary}")
        if preferences.likes:
            preference_lines.append(f"Favorite ingredients: {', '.join(preferences.likes)}")
        if preferences.dislikes:
            preference_lines.append(
                f"Ingredients to avoid (DO NOT USE): {', '.join(preferences.dislikes)}"
            )
    preference_section = (
        "\nUSER TASTE PREFERENCES:\n" + "\n".join(preference_lines) + "\n"
        if preference_lines
        else ""
    )
    recent = ", ".join(recent_recipes) if recent_recipes else "None"
    return f"""You are a meal planning architect. Compose {num_meals} complete, balanced dinner meals.

A meal is a main protein plus a carb side and a vegetable side. Use the search_recipes tool to
find recipes in our database and get_recipe_details when you need specifics. Scale to
{target_servings} servings.

Balance proteins (chicken, beef, pork, seafood, vegetarian), formats (bowls, sandwiches, tacos,
pasta, soups, salads) and cook times across the plan.
{preference_section}
RECENT MEALS TO AVOID: {recent}

Respond with JSON at the end:
{{"meals": [{{"name": "...", "description": "...", "components": {{"main": "...", "carb": "...",
"veggie": "..."}}, "sourceRecipeIds": [123], "estimatedTime": 40, "tags": ["..."],
"usesExpiringIngredients": false, "expiringIngredientsUsed": []}}]}}"""


def planning_user(*, num_meals: int, pantry_items: Sequence[PantryItem]) -> str:
    if pantry_items:
        pantry = "Current pantry staples:\n" + "\n".join(
            f"{item.name}: {format_quantity(item.quantity)} {item.unit}".rstrip()
            for item in pantry_items
        )
    else:
        pantry = "(No pantry items specified - assume standard staples like salt, pepper, oil.)"
    return f"""Plan {num_meals} complete dinner meals for this week.

{pantry}

Search efficiently with a handful of broad searches, stop once you have enough source recipes,
and answer with valid JSON starting with {{ and containing a "meals" array."""


def build_system(*, target_servings: int) -> str:
    return f"""You are constructing detailed recipe cards for composed meals.

For each meal output: name, description, servings ({target_servings}), prepTimeMinutes,
cookTimeMinutes, ingredients (ingredientName, quantity as a number or null, unit, preparation),
steps (5-7 cards each with a title and 2-4 substeps), tags, usesExpiringIngredients,
expiringIngredientsUsed and sourceRecipeIds.

Respond with JSON: {{"meals": [...]}}"""


def build_user(
    *,
    outlines: Sequence[MealOutline],
    sources: dict[int, DatasetRecipe],
    target_servings: int,
) -> str:
    meal_blocks: list[str] = []
    for position, outline in enumerate(outlines, start=1):
        source_lines = [
            f"  - {sources[source_id].name}: {len(sources[source_id].ingredients)} ingredients, "
            f"{len(sources[source_id].steps)} steps"
            for source_id in outline.source_recipe_ids
            if source_id in sources
        ]
        meal_blocks.append(
            f"MEAL {position}: {outline.name}\n"
            f"Description: {outline.description}\n"
            f"Components: Main={outline.components.main}, "
            f"Carb={outline.components.carb or 'none'}, "
            f"Veggie={outline.components.veggie or 'none'}\n"
            f"Estimated time: {outline.estimated_time or 'unknown'} min\n"
            "Source recipes:\n" + "\n".join(source_lines)
        )

    source_blocks = [
        f"[{recipe.source_id}] {recipe.name} ({recipe.servings} servings, "
        f"{recipe.total_time_minutes} min)\n"
        "Ingredients: "
        + ", ".join(
            " ".join(
                part
                for part in (format_quantity(item.quantity), item.unit or "", item.name)
                if part
            )
            for item in recipe.ingredients
        )
        + "\nSteps: "
        + " | ".join(recipe.steps)
        for recipe in sources.values()
    ]
    return (
        f"Construct detailed recipe cards for these {len(outlines)} meals:\n\n"
        + "\n\n".join(meal_blocks)
        + "\n\nSOURCE RECIPE DETAILS:\n"
        + "\n\n".join(source_blocks)
        + "\n\nConstruct the full recipe cards, scaling all ingredients to "
        + f"{target_servings} servings."
    )


POLISH_SYSTEM = "You are a grocery shopping assistant. Answer with JSON only."


def polish_user(*, batch: Sequence[GroceryIngredient], pantry_items: Sequence[PantryItem]) -> str:
    ingredients = json.dumps(
        [{"name": item.name, "quantity": item.quantity, "unit": item.unit} for item in batch],
        indent=2,
    )
    pantry = ""
    if pantry_items:
        pantry = "\nUSER'S PANTRY (adjust shopping quantities accordingly):\n" + "\n".join(
            f"- {item.name}"
            + (f": {format_quantity(item.quantity)} {item.unit}".rstrip() if item.quantity else "")
            + (f" ({item.availability})" if item.availability else "")
            for item in pantry_items
        ) + "\n"
    return f"""Transform these recipe ingredients into a practical shopping list.
{pantry}
Merge similar items, convert to practical metric shopping quantities, drop items that need no
purchase (salt, pepper, water, cooking oil) and assign one category from:
{GROCERY_CATEGORIES}

Input ingredients:
{ingredients}

Return JSON: {{"items": [{{"name": "...", "displayQuantity": "...", "category": "..."}}]}}"""


def merge_user(items: Sequence[PolishedGroceryItem]) -> str:
    current = json.dumps([item.to_wire() for item in items], indent=2)
    return f"""Review this shopping list and merge any duplicate or similar items.

CURRENT LIST:
{current}

Merge exact duplicates, generic plus specific names and the same item in different sizes.
Keep different specific varieties separate. Combine numeric quantities. Return the COMPLETE list.

Respond with JSON: {{"items": [{{"name": "...", "displayQuantity": "...", "category": "..."}}]}}"""


CATEGORIZE_SYSTEM = "You categorize shopping items for a home pantry. Answer with JSON only."


def categorize_user(items: Sequence[ShoppingItemForPantry]) -> str:
    listing = "\n".join(
        f'- ID: {item.id}, Name: "{item.name}", Quantity: "{item.polished_display_quantity}"'
        for item in items
    )
    return f"""Categorize these shopping items for a home pantry. Return a JSON object with an "items" array.

INPUT ITEMS:
{listing}

Each item needs: id, name, quantity, unit (GRAMS, MILLILITERS, UNITS, BUNCH, PIECES, COUNT),
category (PRODUCE, PROTEIN, DAIRY, DRY_GOODS, SPICE, OILS, CONDIMENT, FROZEN, OTHER),
trackingStyle (STOCK_LEVEL, COUNT, PRECISE), stockLevel (FULL for STOCK_LEVEL, else null),
expiryDays (null for shelf stable) and perishable.

Categorize ALL {len(items)} input items. Use the EXACT id values from the input."""


EDIT_SYSTEM = "You are a culinary expert editing recipes. Answer with JSON only."


def substitution_user(request: SubstitutionRequest) -> str:
    original = request.original_ingredient
    preparation = f' (preparation: "{original.preparation}")' if original.preparation else ""
    return f"""A cook is substituting an ingredient in a recipe.

RECIPE: "{request.recipe_name}"
ORIGINAL INGREDIENT: {format_quantity(original.quantity)} {original.unit} {original.name}{preparation}
NEW INGREDIENT: {request.new_ingredient_name}

RECIPE STEPS:
{_steps_text(request)}

Update the recipe name only if the original ingredient appears in it, convert the quantity for
the substitution, update or clear the preparation, and rewrite steps that mention the ingredient.

Respond with JSON:
{{"updatedRecipeName": "...", "updatedIngredient": {{"name": "...", "quantity": 1, "unit": "...",
"preparation": null}}, "updatedSteps": [{{"title": "...", "substeps": ["..."]}}], "notes": null}}"""


def customization_user(request: CustomizationRequest) -> str:
    ingredients = "\n".join(
        "- "
        + " ".join(
            part
            for part in (format_quantity(item.quantity), item.unit, item.ingredient_name)
            if part
        )
        + (f" ({item.preparation})" if item.preparation else "")
        for item in request.ingredients
    )
    previous = ""
    if request.previous_requests:
        previous = "\nPREVIOUS CUSTOMIZATION REQUESTS (for context):\n" + "\n".join(
            f'{index}. "{text}"' for index, text in enumerate(request.previous_requests, start=1)
        ) + "\n"
    return f"""Customize this recipe.

RECIPE: "{request.recipe_name}"
DESCRIPTION: {request.description}

INGREDIENTS:
{ingredients}

STEPS:
{_steps_text(request)}
{previous}
REQUEST: "{request.customization_request}"

Respond with JSON:
{{"updatedRecipeName": "...", "updatedDescription": "...", "ingredientsToAdd": [],
"ingredientsToRemove": [], "ingredientsToModify": [], "updatedSteps": [{{"title": "...",
"substeps": ["..."]}}], "changesSummary": "...", "notes": null}}"""


def shopping_update_user(request: ShoppingListUpdateRequest) -> str:
    changes: list[str] = []
    if request.ingredients_to_remove:
        changes.append(
            f'REMOVE from "{request.recipe_name}":\n'
            + "\n".join(
                f"  - {format_quantity(item.quantity)} {item.unit} {item.ingredient_name}"
                for item in request.ingredients_to_remove
            )
        )
    if request.ingredients_to_add:
        changes.append(
            f'ADD from "{request.recipe_name}":\n'
            + "\n".join(
                f"  - {format_quantity(item.quantity)} {item.unit} {item.ingredient_name}"
                + (f" ({item.preparation})" if item.preparation else "")
                for item in request.ingredients_to_add
            )
        )
    if request.ingredients_to_modify:
        modify_lines: list[str] = []
        for item in request.ingredients_to_modify:
            parts: list[str] = []
            if item.new_name:
                parts.append(f'name: "{item.original_name}" -> "{item.new_name}"')
            if item.new_quantity is not None:
                parts.append(f"qty: {format_quantity(item.new_quantity)}")
            if item.new_unit:
                parts.append(f"unit: {item.new_unit}")
            modify_lines.append(f"  - {item.original_name}: {', '.join(parts)}")
        changes.append("MODIFY:\n" + "\n".join(modify_lines))

    current = json.dumps([item.to_wire() for item in request.current_items], indent=2)
    return f"""You are updating an existing shopping list after a recipe was customized.

CURRENT SHOPPING LIST:
{current}

CHANGES TO APPLY:
{chr(10).join(changes)}

Subtract removed quantities (dropping items that reach zero), add new ingredients or combine them
with matching items, apply modifications, and keep unchanged items exactly as they are.
Categories: {GROCERY_CATEGORIES}

Return the COMPLETE updated list as JSON:
{{"items": [{{"name": "...", "displayQuantity": "...", "category": "..."}}]}}"""


def _steps_text(request: SubstitutionRequest | CustomizationRequest) -> str:
    return "\n\n".join(
        f"Step {index}: {step.title}\n" + "\n".join(f"  - {substep}" for substep in step.substeps)
        for index, step in enumerate(request.steps, start=1)
    )


def format_quantity(quantity: float | None) -> str:
    if quantity is None:
        return ""
    if float(quantity).is_integer():
        return str(int(quantity))
    return f"{quantity:g}"
