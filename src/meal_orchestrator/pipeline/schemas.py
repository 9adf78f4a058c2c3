"""Request and result payloads for the meal-planning pipelines.

Wire format is camelCase; attributes are snake_case. Models validating
model-produced JSON ignore unknown keys.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def _number_or_none(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


class PantryItem(WireModel):
    name: str = Field(min_length=1)
    quantity: float = 0
    unit: str = ""
    availability: str | None = None


class UserPreferences(WireModel):
    likes: list[str] = Field(default_factory=list)
    dislikes: list[str] = Field(default_factory=list)
    summary: str | None = None
    target_servings: int = Field(default=2, ge=1, le=24)


class MealPlanRequest(WireModel):
    pantry_items: list[PantryItem] = Field(default_factory=list)
    preferences: UserPreferences | None = None
    recent_recipe_hashes: list[str] = Field(default_factory=list)
    num_meals: int | None = Field(
        default=None,
        ge=1,
        le=40,
        validation_alias=AliasChoices("numMeals", "numDays", "num_meals"),
    )


class MealComponents(WireModel):
    main: str = ""
    carb: str | None = None
    veggie: str | None = None


class MealOutline(WireModel):
    name: str
    description: str = ""
    components: MealComponents = Field(default_factory=MealComponents)
    source_recipe_ids: list[int] = Field(default_factory=list)
    estimated_time: int | None = None
    tags: list[str] = Field(default_factory=list)
    uses_expiring_ingredients: bool = False
    expiring_ingredients_used: list[str] = Field(default_factory=list)

    @field_validator("source_recipe_ids", mode="before")
    @classmethod
    def _keep_integer_ids(cls, value: Any) -> list[int]:
        if not isinstance(value, list):
            return []
        ids: list[int] = []
        for item in value:
            try:
                ids.append(int(item))
            except (TypeError, ValueError):
                continue
        return ids

    @field_validator("estimated_time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> int | None:
        number = _number_or_none(value)
        return int(number) if number is not None else None


class RecipeIngredient(WireModel):
    ingredient_name: str
    quantity: float | None = None
    unit: str = ""
    preparation: str | None = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _numeric_quantity(cls, value: Any) -> float | None:
        return _number_or_none(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _unit_text(cls, value: Any) -> str:
        return "" if value is None else str(value)


class CookingStep(WireModel):
    title: str
    substeps: list[str] = Field(default_factory=list)


class ComposedMeal(WireModel):
    name: str
    description: str = ""
    servings: int = 2
    prep_time_minutes: int = 0
    cook_time_minutes: int = 0
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    steps: list[CookingStep] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    uses_expiring_ingredients: bool = False
    expiring_ingredients_used: list[str] = Field(default_factory=list)
    source_recipe_ids: list[int] = Field(default_factory=list)
    fallback: bool = False

    @field_validator("servings", "prep_time_minutes", "cook_time_minutes", mode="before")
    @classmethod
    def _whole_minutes(cls, value: Any) -> int:
        number = _number_or_none(value)
        return int(number) if number is not None else 0


class MealPlanResult(WireModel):
    recipes: list[ComposedMeal]
    default_selections: list[int]


class GroceryIngredient(WireModel):
    id: int
    name: str = Field(min_length=1)
    quantity: float = 0
    unit: str = ""


class GroceryPolishRequest(WireModel):
    ingredients: list[GroceryIngredient] = Field(min_length=1)
    pantry_items: list[PantryItem] = Field(default_factory=list)


class PolishedGroceryItem(WireModel):
    name: str
    display_quantity: str = "1"
    category: str = "Pantry"

    @field_validator("display_quantity", mode="before")
    @classmethod
    def _display_text(cls, value: Any) -> str:
        if value is None or value == "":
            return "1"
        return str(value)

    @field_validator("category", mode="before")
    @classmethod
    def _category_text(cls, value: Any) -> str:
        return value or "Pantry"


class GroceryPolishResult(WireModel):
    items: list[PolishedGroceryItem]


class ShoppingItemForPantry(WireModel):
    id: int
    name: str = Field(min_length=1)
    polished_display_quantity: str = ""
    shopping_category: str = ""


class PantryCategorizeRequest(WireModel):
    items: list[ShoppingItemForPantry] = Field(min_length=1)


class CategorizedPantryItem(WireModel):
    id: int
    name: str
    quantity: float = 1
    unit: str = "UNITS"
    category: str = "OTHER"
    tracking_style: str = "PRECISE"
    stock_level: str | None = None
    expiry_days: int | None = None
    perishable: bool = False


class PantryCategorizeResult(WireModel):
    items: list[CategorizedPantryItem]


class SubstitutedIngredient(WireModel):
    name: str
    quantity: float | None = None
    unit: str = ""
    preparation: str | None = None

    @field_validator("quantity", mode="before")
    @classmethod
    def _numeric_quantity(cls, value: Any) -> float | None:
        return _number_or_none(value)


class SubstitutionRequest(WireModel):
    recipe_name: str = Field(min_length=1)
    original_ingredient: SubstitutedIngredient
    new_ingredient_name: str = Field(min_length=1)
    steps: list[CookingStep] = Field(default_factory=list)


class SubstitutionResult(WireModel):
    updated_recipe_name: str = Field(min_length=1)
    updated_ingredient: SubstitutedIngredient
    updated_steps: list[CookingStep] = Field(min_length=1)
    notes: str | None = None


class CustomizationRequest(WireModel):
    recipe_name: str = Field(min_length=1)
    description: str = ""
    ingredients: list[RecipeIngredient] = Field(default_factory=list)
    steps: list[CookingStep] = Field(default_factory=list)
    customization_request: str = Field(min_length=1)
    previous_requests: list[str] = Field(default_factory=list)


class ModifiedIngredient(WireModel):
    original_name: str
    new_name: str | None = None
    new_quantity: float | None = None
    new_unit: str | None = None
    new_preparation: str | None = None

    @field_validator("new_quantity", mode="before")
    @classmethod
    def _numeric_quantity(cls, value: Any) -> float | None:
        return _number_or_none(value)


class CustomizationResult(WireModel):
    updated_recipe_name: str = Field(min_length=1)
    updated_description: str = ""
    ingredients_to_add: list[RecipeIngredient] = Field(default_factory=list)
    ingredients_to_remove: list[str] = Field(default_factory=list)
    ingredients_to_modify: list[ModifiedIngredient] = Field(default_factory=list)
    updated_steps: list[CookingStep] = Field(min_length=1)
    changes_summary: str = Field(min_length=1)
    notes: str | None = None

    @field_validator(
        "ingredients_to_add", "ingredients_to_remove", "ingredients_to_modify", mode="before"
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ShoppingListUpdateRequest(WireModel):
    current_items: list[PolishedGroceryItem] = Field(default_factory=list)
    ingredients_to_add: list[RecipeIngredient] = Field(default_factory=list)
    ingredients_to_remove: list[RecipeIngredient] = Field(default_factory=list)
    ingredients_to_modify: list[ModifiedIngredient] = Field(default_factory=list)
    recipe_name: str = Field(min_length=1)

    @property
    def has_changes(self) -> bool:
        return bool(
            self.ingredients_to_add or self.ingredients_to_remove or self.ingredients_to_modify
        )
