from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from cooked.app.domain.models import GroceryListItem, Recipe, RecipeStatus


@dataclass
class GroceryGroup:
    """Grocery items belonging to one recipe."""
    recipe_id: str
    recipe_title: str
    items: list[GroceryListItem] = field(default_factory=list)

    @property
    def to_buy(self) -> list[GroceryListItem]:
        return [item for item in self.items if not item.checked and not item.already_have]

    @property
    def active(self) -> list[GroceryListItem]:
        return [item for item in self.items if not item.already_have]

    @property
    def checked_count(self) -> int:
        return sum(1 for item in self.active if item.checked)


@dataclass
class GroceryList:
    items: list[GroceryListItem] = field(default_factory=list)

    @property
    def to_buy(self) -> list[GroceryListItem]:
        return [item for item in self.items if not item.checked and not item.already_have]

    @property
    def already_have(self) -> list[GroceryListItem]:
        return [item for item in self.items if item.already_have]

    @property
    def done(self) -> list[GroceryListItem]:
        return [item for item in self.items if item.checked and not item.already_have]

    def groups(self) -> list[GroceryGroup]:
        grouped: dict[str, GroceryGroup] = {}
        for item in self.items:
            group = grouped.get(item.recipe_id)
            if group is None:
                group = grouped[item.recipe_id] = GroceryGroup(item.recipe_id, item.recipe_title)
            group.items.append(item)
        return list(grouped.values())


def project_grocery_list(recipes: Iterable[Recipe]) -> GroceryList:
    """Every ingredient of every saved recipe, tagged with its recipe. Rebuilt on each call."""
    items = [
        GroceryListItem(
            id=ingredient.id,
            name=ingredient.name,
            quantity=ingredient.quantity,
            checked=ingredient.checked,
            already_have=ingredient.already_have,
            recipe_id=recipe.id,
            recipe_title=recipe.title,
        )
        for recipe in recipes
        if recipe.status is RecipeStatus.SAVED
        for ingredient in recipe.ingredients
    ]
    return GroceryList(items=items)
