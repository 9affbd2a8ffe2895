from __future__ import annotations

import logging
import re
from typing import Literal, Optional

from cooked.app.domain.models import ParsedIngredient, ParsedRecipeData, ParsedStep

from .validator import DEFAULT_TITLE

logger = logging.getLogger(__name__)

Section = Literal["ingredients", "steps"]

UNIT_WORDS = (
    "cups", "cup", "c",
    "tablespoons", "tablespoon", "tbsp", "tbs", "tb",
    "teaspoons", "teaspoon", "tsp",
    "ounces", "ounce", "oz",
    "pounds", "pound", "lbs", "lb",
    "grams", "gram", "g", "kg",
    "milliliters", "millilitres", "ml",
    "liters", "litres", "l",
    "pieces", "piece", "cloves", "clove",
    "pinches", "pinch", "dash", "handful",
    "cans", "can", "slices", "slice", "sticks", "stick", "bunch",
)
STEP_HEADER_WORDS = ("instruction", "direction", "step", "method", "preparation")
MAX_HEADER_WORDS = 4

_NUMBER = r"(?:\d+(?:[./]\d+)?|[½¼¾⅓⅔⅛])"
QUANTITY_PATTERN = re.compile(
    rf"^(?P<amount>{_NUMBER}(?:[\s-]*{_NUMBER})*)"
    rf"(?:\s*(?P<unit>(?:{'|'.join(UNIT_WORDS)})\.?)(?=\s|$))?\s*",
    re.IGNORECASE,
)
NUMBERED_LINE_PATTERN = re.compile(r"^\d+\s*[.)]\s+")
STEP_PREFIX_PATTERN = re.compile(r"^(?:step\s*\d+\s*[.):\-]?|\d+\s*[.):\-])\s*", re.IGNORECASE)
BULLET_PATTERN = re.compile(r"^[-*•·]+\s*")
HEADER_TRIM_PATTERN = re.compile(r"[#*:\-\s]+")


def _header_section(line: str) -> Optional[Section]:
    if NUMBERED_LINE_PATTERN.match(line) or STEP_PREFIX_PATTERN.match(line):
        return None
    words = HEADER_TRIM_PATTERN.sub(" ", line).strip().lower().split()
    if not words or len(words) > MAX_HEADER_WORDS:
        return None
    label = " ".join(words)
    if "ingredient" in label:
        return "ingredients"
    if any(word in label for word in STEP_HEADER_WORDS):
        return "steps"
    return None


def _split_ingredient(line: str) -> ParsedIngredient:
    text = BULLET_PATTERN.sub("", line).strip()
    match = QUANTITY_PATTERN.match(text)
    if not match or not match.group("amount"):
        return ParsedIngredient(name=text, quantity="")

    quantity = match.group("amount").strip()
    if match.group("unit"):
        quantity = f"{quantity} {match.group('unit')}"
    name = text[match.end():].strip()
    if not name:
        return ParsedIngredient(name=text, quantity="")
    return ParsedIngredient(name=name, quantity=quantity)


def _looks_like_ingredient(line: str) -> bool:
    text = BULLET_PATTERN.sub("", line)
    match = QUANTITY_PATTERN.match(text)
    return bool(match and match.group("unit") and text[match.end():].strip())


def _strip_step_number(line: str) -> str:
    text = BULLET_PATTERN.sub("", line).strip()
    return STEP_PREFIX_PATTERN.sub("", text, count=1).strip() or text


class HeuristicRecipeParser:
    """
    Deterministic, non-AI fallback parser.

    Recognizes "Ingredients"/"Instructions" style headers, quantity+unit
    ingredient lines and numbered step lines. Steps are always renumbered
    1..N. When nothing can be classified, the body is split in half so the
    result is never empty for non-empty input.
    """

    def parse(self, text: str) -> ParsedRecipeData:
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
        if not lines:
            return ParsedRecipeData(title=DEFAULT_TITLE)

        if _header_section(lines[0]):
            title, body = DEFAULT_TITLE, lines
        else:
            title, body = lines[0], lines[1:]

        ingredients: list[ParsedIngredient] = []
        instructions: list[str] = []
        section: Optional[Section] = None

        for line in body:
            header = _header_section(line)
            if header:
                section = header
                continue

            if section == "ingredients":
                ingredient = _split_ingredient(line)
                if ingredient.name:
                    ingredients.append(ingredient)
            elif section == "steps":
                instructions.append(_strip_step_number(line))
            elif NUMBERED_LINE_PATTERN.match(line):
                instructions.append(_strip_step_number(line))
            elif _looks_like_ingredient(line):
                ingredients.append(_split_ingredient(line))

        if not ingredients and not instructions:
            logger.debug("heuristic.split_in_half lines=%d", len(lines))
            midpoint = len(lines) // 2
            ingredients = [ParsedIngredient(name=line) for line in lines[1:midpoint]]
            instructions = lines[midpoint:]

        steps = [ParsedStep(order=idx + 1, instruction=value) for idx, value in enumerate(instructions)]
        return ParsedRecipeData(title=title, ingredients=ingredients, steps=steps)
