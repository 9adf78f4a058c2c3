"""Recipe dataset access."""

from meal_orchestrator.retrieval.recipes import (
    DatasetIngredient,
    DatasetRecipe,
    RecipeCatalog,
    matches_protein,
)

__all__ = ["DatasetIngredient", "DatasetRecipe", "RecipeCatalog", "matches_protein"]
