from __future__ import annotations

import copy
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from cooked.app.domain.models import Recipe

from .errors import RecipeStoreError

logger = logging.getLogger(__name__)

RECIPES_ADAPTER = TypeAdapter(list[Recipe])


class RecipeStore(Protocol):
    """Whole-collection persistence. Last write wins."""

    def load(self) -> list[Recipe]: ...

    def save(self, recipes: list[Recipe]) -> None: ...


class InMemoryRecipeStore:
    def __init__(self, recipes: list[Recipe] | None = None) -> None:
        self._recipes = copy.deepcopy(recipes or [])
        self.saves = 0

    def load(self) -> list[Recipe]:
        return copy.deepcopy(self._recipes)

    def save(self, recipes: list[Recipe]) -> None:
        self._recipes = copy.deepcopy(recipes)
        self.saves += 1


class JsonRecipeStore:
    """Recipes kept as one JSON array on disk, replaced atomically on save."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[Recipe]:
        if not self.path.exists():
            return []
        try:
            return RECIPES_ADAPTER.validate_json(self.path.read_bytes())
        except OSError as error:
            raise RecipeStoreError(f"Could not read recipes from {self.path}: {error}") from error
        except ValidationError as error:
            raise RecipeStoreError(
                f"Invalid recipes file {self.path}: {error.error_count()} validation error(s)"
            ) from error

    def save(self, recipes: list[Recipe]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = RECIPES_ADAPTER.dump_json(recipes, indent=2)

        fd, temp_name = tempfile.mkstemp(prefix=".recipes-", suffix=".json", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(payload)
            os.replace(temp_name, self.path)
        except OSError as error:
            Path(temp_name).unlink(missing_ok=True)
            raise RecipeStoreError(f"Could not write recipes to {self.path}: {error}") from error

        logger.debug("store.saved path=%s count=%d", self.path, len(recipes))
