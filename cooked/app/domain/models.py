# cooked/app/domain/models.py
"""
Domain models for recipes, the extraction pipeline output and transcription jobs.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class RecipeCategory(str, Enum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    PASTA = "pasta"
    VEGETARIAN = "vegetarian"
    SOUP = "soup"
    SALAD = "salad"
    DESSERT = "dessert"
    SNACK = "snack"
    OTHER = "other"


class RecipeStatus(str, Enum):
    SAVED = "saved"
    COOKED = "cooked"


class SourceKind(str, Enum):
    TEXT = "text"
    LINK = "link"
    IMAGE = "image"
    VIDEO = "video"


@dataclass
class Ingredient:
    """A persisted ingredient. `checked` and `already_have` are independent flags."""
    id: str
    name: str
    quantity: str = ""
    checked: bool = False
    already_have: bool = False


@dataclass
class RecipeStep:
    id: str
    order: int  # 1-based
    instruction: str


@dataclass
class Recipe:
    """A recipe committed to the local library."""
    id: str
    title: str
    ingredients: list[Ingredient]
    steps: list[RecipeStep]
    category: RecipeCategory
    status: RecipeStatus
    source: SourceKind
    created_at: datetime
    updated_at: datetime
    description: Optional[str] = None
    source_url: Optional[str] = None
    image_uri: Optional[str] = None
    cook_date: Optional[str] = None  # YYYY-MM-DD
    reminder_enabled: bool = False
    reminder_id: Optional[str] = None


@dataclass
class ParsedIngredient:
    name: str
    quantity: str = ""


@dataclass
class ParsedStep:
    order: int
    instruction: str


@dataclass
class ParsedRecipeData:
    """
    Output of the extraction pipeline, before persistence.
    Ingredients and steps carry no identity or shopping flags yet.
    """
    title: str
    description: Optional[str] = None
    ingredients: list[ParsedIngredient] = field(default_factory=list)
    steps: list[ParsedStep] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "ingredients": [{"name": i.name, "quantity": i.quantity} for i in self.ingredients],
            "steps": [{"order": s.order, "instruction": s.instruction} for s in self.steps],
        }
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass
class GroceryListItem:
    """An ingredient annotated with its owning recipe. Derived, never stored."""
    id: str
    name: str
    quantity: str
    checked: bool
    already_have: bool
    recipe_id: str
    recipe_title: str


class JobStatus(str, Enum):
    """Status reported by a transcription job service."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class TranscriptionJob:
    id: str
    status: JobStatus
    text: Optional[str] = None
    error: Optional[str] = None


@dataclass
class TranscriptResult:
    """Transcript text plus the channel that produced it."""
    text: str
    source: str
