from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, StrictStr


class ParseVideoRequest(BaseModel):
    url: StrictStr


class IngredientItem(BaseModel):
    name: str
    quantity: str = ""


class RecipeStep(BaseModel):
    order: int
    instruction: str


class ParsedRecipe(BaseModel):
    title: str
    description: Optional[str] = None
    ingredients: list[IngredientItem] = Field(default_factory=list)
    steps: list[RecipeStep] = Field(default_factory=list)


class ParseVideoResponse(BaseModel):
    recipe: ParsedRecipe
    source: str


class ErrorResponse(BaseModel):
    error: str
