from __future__ import annotations

from pathlib import Path

import pytest

from fakes import FixedClock, ScriptedGateway
from meal_orchestrator.retrieval.recipes import RecipeCatalog

DATA_PATH = Path(__file__).resolve().parents[2] / "data" / "recipes.json"


@pytest.fixture
def catalog() -> RecipeCatalog:
    return RecipeCatalog.from_path(DATA_PATH)


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()
