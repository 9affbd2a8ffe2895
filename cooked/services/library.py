from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, Callable, Iterable, Optional

from cooked.app.domain.models import (
    Ingredient,
    ParsedRecipeData,
    Recipe,
    RecipeCategory,
    RecipeStatus,
    RecipeStep,
    SourceKind,
)

from .entitlements import EntitlementChecker, FreeTierEntitlements
from .errors import RecipeNotFoundError, RecipeUpdateError
from .grocery import GroceryList, project_grocery_list
from .ids import generate_id
from .notifications import NullReminderScheduler, ReminderScheduler
from .store import JsonRecipeStore, RecipeStore
from .validator import DEFAULT_TITLE

if TYPE_CHECKING:
    from cooked.app.config import Settings

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "category",
    "cook_date",
    "reminder_enabled",
    "ingredients",
    "steps",
    "source_url",
    "image_uri",
})
IMMUTABLE_FIELDS = frozenset({"id", "created_at"})
SCHEDULE_FIELDS = frozenset({"title", "cook_date", "reminder_enabled"})
ONE_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecipeLibrary:
    """
    The user's saved recipes.

    Every mutation loads the collection, changes one recipe, and writes the
    whole collection back. The grocery list is projected from the saved
    recipes on each read.
    """

    def __init__(
        self,
        store: RecipeStore,
        reminders: Optional[ReminderScheduler] = None,
        entitlements: Optional[EntitlementChecker] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self.store = store
        self.reminders = reminders or NullReminderScheduler()
        self.entitlements = entitlements or FreeTierEntitlements()
        self._clock = clock or _utcnow
        self._new_id = id_factory or generate_id

    # Reads

    def list_recipes(self) -> list[Recipe]:
        return self.store.load()

    def get(self, recipe_id: str) -> Recipe:
        for recipe in self.store.load():
            if recipe.id == recipe_id:
                return recipe
        raise RecipeNotFoundError(recipe_id)

    def by_category(self, category: Optional[RecipeCategory | str]) -> list[Recipe]:
        """All recipes when `category` is None or "all"."""
        if category is None or category == "all":
            return self.list_recipes()
        wanted = RecipeCategory(category)
        return [recipe for recipe in self.store.load() if recipe.category is wanted]

    def by_status(self, status: RecipeStatus | str) -> list[Recipe]:
        wanted = RecipeStatus(status)
        return [recipe for recipe in self.store.load() if recipe.status is wanted]

    def grocery_list(self) -> GroceryList:
        return project_grocery_list(self.store.load())

    def can_add_recipe(self) -> bool:
        return self.entitlements.can_add_recipe(len(self.store.load()))

    # Helpers

    def _now_after(self, previous: Optional[datetime] = None) -> datetime:
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + ONE_TICK
        return now

    def _ingredients(self, items: Iterable[Any]) -> list[Ingredient]:
        ingredients = []
        for item in items:
            if isinstance(item, Ingredient):
                ingredient = replace(item, name=item.name.strip(), quantity=item.quantity.strip())
            else:
                ingredient = Ingredient(
                    id=self._new_id(),
                    name=item.name.strip(),
                    quantity=(item.quantity or "").strip(),
                )
            if ingredient.name:
                ingredients.append(ingredient)
        return ingredients

    def _steps(self, items: Iterable[Any]) -> list[RecipeStep]:
        steps = []
        for item in items:
            instruction = item.instruction.strip()
            if not instruction:
                continue
            step_id = item.id if isinstance(item, RecipeStep) else self._new_id()
            steps.append(RecipeStep(id=step_id, order=len(steps) + 1, instruction=instruction))
        return steps

    def _sync_reminder(self, recipe: Recipe) -> None:
        if recipe.reminder_id:
            self.reminders.cancel(recipe.reminder_id)
            recipe.reminder_id = None
        if recipe.reminder_enabled and recipe.cook_date:
            recipe.reminder_id = self.reminders.schedule(recipe.id, recipe.title, recipe.cook_date)

    def _mutate(self, recipe_id: str, change: Callable[[Recipe], None]) -> Recipe:
        recipes = self.store.load()
        for recipe in recipes:
            if recipe.id == recipe_id:
                change(recipe)
                recipe.updated_at = self._now_after(recipe.updated_at)
                self.store.save(recipes)
                return recipe
        raise RecipeNotFoundError(recipe_id)

    # Lifecycle

    def commit(
        self,
        parsed: ParsedRecipeData,
        *,
        category: RecipeCategory | str = RecipeCategory.OTHER,
        source: SourceKind | str = SourceKind.TEXT,
        source_url: Optional[str] = None,
        image_uri: Optional[str] = None,
        cook_date: Optional[str] = None,
        reminder_enabled: bool = False,
    ) -> Recipe:
        """Persist freshly parsed data as a new saved recipe."""
        now = self._now_after()
        recipe = Recipe(
            id=self._new_id(),
            title=parsed.title.strip() or DEFAULT_TITLE,
            description=parsed.description,
            ingredients=self._ingredients(parsed.ingredients),
            steps=self._steps(sorted(parsed.steps, key=lambda step: step.order)),
            category=RecipeCategory(category),
            status=RecipeStatus.SAVED,
            source=SourceKind(source),
            source_url=source_url,
            image_uri=image_uri,
            cook_date=cook_date,
            reminder_enabled=reminder_enabled,
            created_at=now,
            updated_at=now,
        )
        self._sync_reminder(recipe)

        recipes = self.store.load()
        recipes.append(recipe)
        self.store.save(recipes)
        logger.info(
            "library.commit id=%s ingredients=%d steps=%d source=%s",
            recipe.id,
            len(recipe.ingredients),
            len(recipe.steps),
            recipe.source.value,
        )
        return recipe

    def update(self, recipe_id: str, **changes: Any) -> Recipe:
        """
        Raises:
            RecipeUpdateError: A change targets an immutable or unknown field.
            RecipeNotFoundError: No recipe has this id.
        """
        forbidden = IMMUTABLE_FIELDS.intersection(changes)
        if forbidden:
            raise RecipeUpdateError(f"Cannot change {', '.join(sorted(forbidden))}")
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise RecipeUpdateError(f"Unknown recipe fields: {', '.join(sorted(unknown))}")

        def change(recipe: Recipe) -> None:
            for name, value in changes.items():
                if name == "ingredients":
                    value = self._ingredients(value)
                elif name == "steps":
                    value = self._steps(value)
                elif name == "category":
                    value = RecipeCategory(value)
                setattr(recipe, name, value)
            if SCHEDULE_FIELDS.intersection(changes):
                self._sync_reminder(recipe)

        return self._mutate(recipe_id, change)

    def delete(self, recipe_id: str) -> None:
        recipes = self.store.load()
        remaining = [recipe for recipe in recipes if recipe.id != recipe_id]
        if len(remaining) == len(recipes):
            raise RecipeNotFoundError(recipe_id)

        deleted = next(recipe for recipe in recipes if recipe.id == recipe_id)
        if deleted.reminder_id:
            self.reminders.cancel(deleted.reminder_id)
        self.store.save(remaining)
        logger.info("library.delete id=%s", recipe_id)

    def update_ingredient(
        self,
        recipe_id: str,
        ingredient_id: str,
        *,
        name: Optional[str] = None,
        quantity: Optional[str] = None,
        checked: Optional[bool] = None,
        already_have: Optional[bool] = None,
    ) -> Recipe:
        def change(recipe: Recipe) -> None:
            ingredient = next((i for i in recipe.ingredients if i.id == ingredient_id), None)
            if ingredient is None:
                raise RecipeUpdateError(f"Ingredient not found: {ingredient_id}")
            if name is not None:
                ingredient.name = name
            if quantity is not None:
                ingredient.quantity = quantity
            if checked is not None:
                ingredient.checked = checked
            if already_have is not None:
                ingredient.already_have = already_have

        return self._mutate(recipe_id, change)

    def toggle_ingredient_checked(self, recipe_id: str, ingredient_id: str) -> Recipe:
        ingredient = self._find_ingredient(recipe_id, ingredient_id)
        return self.update_ingredient(recipe_id, ingredient_id, checked=not ingredient.checked)

    def toggle_ingredient_already_have(self, recipe_id: str, ingredient_id: str) -> Recipe:
        ingredient = self._find_ingredient(recipe_id, ingredient_id)
        return self.update_ingredient(recipe_id, ingredient_id, already_have=not ingredient.already_have)

    def _find_ingredient(self, recipe_id: str, ingredient_id: str) -> Ingredient:
        recipe = self.get(recipe_id)
        for ingredient in recipe.ingredients:
            if ingredient.id == ingredient_id:
                return ingredient
        raise RecipeUpdateError(f"Ingredient not found: {ingredient_id}")

    def mark_cooked(self, recipe_id: str) -> Recipe:
        def change(recipe: Recipe) -> None:
            recipe.status = RecipeStatus.COOKED

        return self._mutate(recipe_id, change)

    def cook_again(
        self,
        recipe_id: str,
        *,
        ingredients: Optional[list[Any]] = None,
        cook_date: Optional[str] = None,
        reminder_enabled: bool = False,
    ) -> Recipe:
        """Put a recipe back on the grocery list with a fresh checklist and schedule."""

        def change(recipe: Recipe) -> None:
            if ingredients is not None:
                recipe.ingredients = self._ingredients(ingredients)
            for ingredient in recipe.ingredients:
                ingredient.checked = False
                ingredient.already_have = False
            recipe.status = RecipeStatus.SAVED
            recipe.cook_date = cook_date
            recipe.reminder_enabled = reminder_enabled and bool(cook_date)
            self._sync_reminder(recipe)

        recipe = self._mutate(recipe_id, change)
        logger.info("library.cook_again id=%s ingredients=%d", recipe.id, len(recipe.ingredients))
        return recipe


def build_library(settings: "Settings", reminders: Optional[ReminderScheduler] = None) -> RecipeLibrary:
    """Library backed by the JSON file named in the settings."""
    return RecipeLibrary(
        JsonRecipeStore(settings.RECIPES_STORE_PATH),
        reminders=reminders,
        entitlements=FreeTierEntitlements(limit=settings.FREE_RECIPE_LIMIT),
    )
