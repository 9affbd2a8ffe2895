from __future__ import annotations

import json
import math
from typing import Any

from cooked.app.domain.models import ParsedIngredient, ParsedRecipeData, ParsedStep

from .errors import SchemaViolation

DEFAULT_TITLE = "Untitled Recipe"
UNKNOWN_INGREDIENT = "Unknown ingredient"


def _balanced_object_end(text: str, start: int) -> int | None:
    depth = 0
    in_string = False
    escaped = False

    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None


def extract_json_object(text: str | None) -> dict[str, Any]:
    """
    Pull the first balanced JSON object out of a model reply.

    Replies may wrap the object in prose or markdown fences, so every `{` is
    tried in turn until one yields a parseable object.
    """
    if not text or not isinstance(text, str):
        raise SchemaViolation("Empty response from AI provider")

    start = text.find("{")
    while start != -1:
        end = _balanced_object_end(text, start)
        candidate = None
        if end is not None:
            try:
                candidate = json.loads(text[start:end + 1])
            except json.JSONDecodeError:
                pass
        if isinstance(candidate, dict):
            return candidate
        start = text.find("{", start + 1)

    raise SchemaViolation("No JSON object found in response")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _ingredient(entry: Any) -> ParsedIngredient:
    if not isinstance(entry, dict):
        return ParsedIngredient(name=UNKNOWN_INGREDIENT, quantity="")
    name = entry.get("name")
    quantity = entry.get("quantity")
    return ParsedIngredient(
        name=name if isinstance(name, str) else UNKNOWN_INGREDIENT,
        quantity=quantity if isinstance(quantity, str) else "",
    )


def _step(entry: Any, position: int) -> ParsedStep:
    data = entry if isinstance(entry, dict) else {}
    order = data.get("order")
    instruction = data.get("instruction")
    return ParsedStep(
        order=int(order) if _is_number(order) else position,
        instruction=instruction if isinstance(instruction, str) else "",
    )


def validate_recipe(raw: Any) -> ParsedRecipeData:
    """Coerce whatever a provider returned into ParsedRecipeData. Never raises."""
    data = raw if isinstance(raw, dict) else {}

    title = data.get("title")
    description = data.get("description")
    ingredients = data.get("ingredients")
    steps = data.get("steps")

    return ParsedRecipeData(
        title=title if isinstance(title, str) else DEFAULT_TITLE,
        description=description if isinstance(description, str) else None,
        ingredients=[_ingredient(i) for i in ingredients] if isinstance(ingredients, list) else [],
        steps=[_step(s, idx + 1) for idx, s in enumerate(steps)] if isinstance(steps, list) else [],
    )


def parse_recipe_reply(text: str | None) -> ParsedRecipeData:
    """extract_json_object + validate_recipe. Raises SchemaViolation only when no object is present."""
    return validate_recipe(extract_json_object(text))
