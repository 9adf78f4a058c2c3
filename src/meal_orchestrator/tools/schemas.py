"""Strict Pydantic schemas for tool inputs and outputs."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_TOOL_RESULTS = 20


class StrictModel(BaseModel):
    """Base model for strict schema validation."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class SearchRecipesInput(StrictModel):
    query: str | None = Field(
        default=None, description="Text search query for recipe names or descriptions"
    )
    ingredients: list[str] | None = Field(
        default=None, description="Ingredients that should be in the recipe"
    )
    cuisine: str | None = Field(
        default=None, description="Cuisine type (e.g., italian, mexican, thai, chinese)"
    )
    max_time: float | None = Field(
        default=None,
        alias="maxTime",
        gt=0,
        description="Maximum total cooking time in minutes",
    )
    tags: list[str] | None = Field(
        default=None, description="Tags to filter by (e.g., easy, quick, vegetarian)"
    )
    protein: str | None = Field(
        default=None,
        description="Main protein type (chicken, beef, pork, seafood, vegetarian)",
    )
    limit: int = Field(default=MAX_TOOL_RESULTS, ge=1, le=MAX_TOOL_RESULTS)


class RecipeSummary(StrictModel):
    id: int
    name: str
    description: str
    time: int | None = None
    servings: int
    cuisines: list[str]
    tags: list[str]
    main_ingredients: list[str] = Field(alias="mainIngredients")


class SearchRecipesOutput(StrictModel):
    results: list[RecipeSummary] = Field(max_length=MAX_TOOL_RESULTS)


class GetRecipeDetailsInput(StrictModel):
    recipe_ids: list[int] = Field(
        alias="recipeIds",
        min_length=1,
        description=f"Array of recipe source IDs to fetch (first {MAX_TOOL_RESULTS} are used)",
    )

    @field_validator("recipe_ids")
    @classmethod
    def _keep_first_ids(cls, value: list[int]) -> list[int]:
        return value[:MAX_TOOL_RESULTS]


class RecipeIngredientDetail(StrictModel):
    name: str
    quantity: float | None = None
    unit: str | None = None
    preparation: str | None = None


class RecipeDetail(StrictModel):
    id: int
    name: str
    description: str
    servings: int
    time: int | None = None
    ingredients: list[RecipeIngredientDetail]
    steps: list[str]
    tags: list[str]
    cuisines: list[str]


class GetRecipeDetailsOutput(StrictModel):
    results: list[RecipeDetail] = Field(max_length=MAX_TOOL_RESULTS)
