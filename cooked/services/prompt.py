from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from .errors import PromptTemplateError

PROMPTS_DIR = Path(__file__).parent / "prompts"

PromptName = Literal["recipe_text", "recipe_transcript", "recipe_images"]


@lru_cache(maxsize=None)
def load_prompt(name: PromptName) -> str:
    file_path = PROMPTS_DIR / f"{name}.txt"
    try:
        return file_path.read_text(encoding="utf-8")
    except FileNotFoundError as not_found_error:
        raise PromptTemplateError(f"Prompt file not found: {file_path}") from not_found_error
    except OSError as io_error:
        raise PromptTemplateError(f"Unable to read prompt file: {io_error}") from io_error


def build_prompt(name: PromptName, content: str = "") -> str:
    """Template followed by the recipe content, as a single user message."""
    template = load_prompt(name)
    if not content:
        return template.rstrip()
    return f"{template.rstrip()}\n{content}"
