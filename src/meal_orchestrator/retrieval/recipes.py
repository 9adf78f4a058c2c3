"""In-memory recipe catalog loaded from the JSON dataset."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

MAX_RESULTS = 20


@dataclass(frozen=True)
class DatasetIngredient:
    name: str
    quantity: float | None = None
    unit: str | None = None
    preparation: str | None = None


@dataclass(frozen=True)
class DatasetRecipe:
    source_id: int
    name: str
    description: str = ""
    servings: int = 4
    total_time_minutes: int | None = None
    ingredients: tuple[DatasetIngredient, ...] = ()
    steps: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    category: str | None = None
    cuisines: tuple[str, ...] = ()
    dietary_flags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> DatasetRecipe:
        ingredients = tuple(
            DatasetIngredient(
                name=str(item.get("name", "")),
                quantity=_optional_float(item.get("quantity")),
                unit=item.get("unit") or None,
                preparation=item.get("preparation") or None,
            )
            for item in payload.get("ingredients", [])
            if isinstance(item, dict)
        )
        total_time = payload.get("totalTimeMinutes")
        return cls(
            source_id=int(payload["sourceId"]),
            name=str(payload.get("name", "")),
            description=str(payload.get("description") or ""),
            servings=int(payload.get("servings") or 4),
            total_time_minutes=int(total_time) if total_time is not None else None,
            ingredients=ingredients,
            steps=tuple(str(step) for step in payload.get("steps", [])),
            tags=tuple(str(tag) for tag in payload.get("tags", [])),
            category=payload.get("category"),
            cuisines=tuple(str(cuisine) for cuisine in payload.get("cuisines", [])),
            dietary_flags=tuple(str(flag) for flag in payload.get("dietaryFlags", [])),
        )

    def ingredient_text(self) -> str:
        return " ".join(item.name.lower() for item in self.ingredients)

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.source_id,
            "name": self.name,
            "description": self.description[:100],
            "time": self.total_time_minutes,
            "servings": self.servings,
            "cuisines": list(self.cuisines),
            "tags": list(self.tags[:4]),
            "mainIngredients": [item.name for item in self.ingredients[:5]],
        }

    def details(self) -> dict[str, Any]:
        return {
            "id": self.source_id,
            "name": self.name,
            "description": self.description,
            "servings": self.servings,
            "time": self.total_time_minutes,
            "ingredients": [
                {
                    "name": item.name,
                    "quantity": item.quantity,
                    "unit": item.unit,
                    "preparation": item.preparation,
                }
                for item in self.ingredients
            ],
            "steps": list(self.steps),
            "tags": list(self.tags),
            "cuisines": list(self.cuisines),
        }


@dataclass
class RecipeCatalog:
    recipes: list[DatasetRecipe] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_source_id = {recipe.source_id: recipe for recipe in self.recipes}

    @classmethod
    def from_path(cls, path: Path) -> RecipeCatalog:
        if not path.exists():
            logger.warning("Recipe dataset missing path=%s; catalog is empty", path)
            return cls()
        raw = json.loads(path.read_text(encoding="utf-8"))
        rows = raw if isinstance(raw, list) else []
        recipes = [DatasetRecipe.from_dict(row) for row in rows if isinstance(row, dict)]
        logger.info("Loaded recipes count=%d path=%s", len(recipes), path)
        return cls(recipes=recipes)

    def __len__(self) -> int:
        return len(self.recipes)

    def get(self, source_id: int) -> DatasetRecipe | None:
        return self._by_source_id.get(source_id)

    def get_many(self, source_ids: Iterable[int]) -> list[DatasetRecipe]:
        found: list[DatasetRecipe] = []
        for source_id in source_ids:
            recipe = self.get(source_id)
            if recipe is not None:
                found.append(recipe)
        return found

    def search(
        self,
        *,
        query: str | None = None,
        ingredients: list[str] | None = None,
        cuisine: str | None = None,
        max_time: float | None = None,
        tags: list[str] | None = None,
        protein: str | None = None,
        limit: int = MAX_RESULTS,
    ) -> list[DatasetRecipe]:
        """Filter and rank recipes; requested ingredients boost the score."""
        scored: list[tuple[float, DatasetRecipe]] = []
        for recipe in self.recipes:
            if cuisine and not any(cuisine.lower() in c.lower() for c in recipe.cuisines):
                continue
            if max_time and recipe.total_time_minutes and recipe.total_time_minutes > max_time:
                continue
            if query and not _matches_text(recipe, query.lower()):
                continue

            score = 1.0
            if ingredients:
                matched = [
                    wanted
                    for wanted in ingredients
                    if any(wanted.lower() in item.name.lower() for item in recipe.ingredients)
                ]
                if not matched:
                    continue
                score += 0.5 * len(matched)
            scored.append((score, recipe))

        scored.sort(key=lambda item: item[0], reverse=True)
        results = [recipe for _, recipe in scored[:MAX_RESULTS]]

        if protein:
            results = [recipe for recipe in results if matches_protein(recipe, protein)]
        if tags:
            wanted_tags = [tag.lower() for tag in tags]
            results = [
                recipe
                for recipe in results
                if any(wanted in tag.lower() for wanted in wanted_tags for tag in recipe.tags)
            ]
        return results[: max(1, min(limit, MAX_RESULTS))]


def matches_protein(recipe: DatasetRecipe, protein: str) -> bool:
    text = recipe.ingredient_text()
    normalized = protein.lower()
    if normalized == "chicken":
        return "chicken" in text
    if normalized == "beef":
        return "beef" in text or "steak" in text
    if normalized == "pork":
        return any(word in text for word in ("pork", "bacon", "ham"))
    if normalized == "seafood":
        return any(word in text for word in ("fish", "shrimp", "salmon"))
    if normalized == "vegetarian":
        return not any(word in text for word in ("chicken", "beef", "pork", "fish"))
    return True


def _matches_text(recipe: DatasetRecipe, text: str) -> bool:
    if text in recipe.name.lower() or text in recipe.description.lower():
        return True
    return any(text in item.name.lower() for item in recipe.ingredients)


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
