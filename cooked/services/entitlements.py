from __future__ import annotations

from typing import Protocol

FREE_RECIPE_LIMIT = 10


class EntitlementChecker(Protocol):
    def can_add_recipe(self, current_count: int) -> bool: ...


class FreeTierEntitlements:
    """Free users keep up to `limit` recipes; subscribers are unlimited."""

    def __init__(self, limit: int = FREE_RECIPE_LIMIT, subscribed: bool = False) -> None:
        self.limit = limit
        self.subscribed = subscribed

    def can_add_recipe(self, current_count: int) -> bool:
        return self.subscribed or current_count < self.limit
