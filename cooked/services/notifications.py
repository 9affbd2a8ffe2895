from __future__ import annotations

import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class ReminderScheduler(Protocol):
    def schedule(self, recipe_id: str, title: str, cook_date: str) -> Optional[str]:
        """Schedule a cooking reminder; returns a handle for cancel(), or None."""
        ...

    def cancel(self, handle: str) -> None: ...


class NullReminderScheduler:
    """No notification backend: reminders are recorded on the recipe but never fire."""

    def schedule(self, recipe_id: str, title: str, cook_date: str) -> Optional[str]:
        logger.debug("reminder.skip recipe=%s date=%s", recipe_id, cook_date)
        return None

    def cancel(self, handle: str) -> None:
        return None
