from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence, Union

import httpx

from cooked.app.domain.models import ParsedRecipeData

from .chain import ExtractionChain, chain_from_settings
from .images import prepare_images
from .normalizer import InputNormalizer, RawInput, TranscriptSource
from .types import InputKind

if TYPE_CHECKING:
    from cooked.app.config import Settings

logger = logging.getLogger(__name__)

STUB_TITLE = "Recipe"


def stub_recipe(text: str) -> ParsedRecipeData:
    """Stub inputs skip the AI chain: the guidance text becomes the description."""
    return ParsedRecipeData(title=STUB_TITLE, description=text, ingredients=[], steps=[])


class RecipeParser:
    """Normalize -> (stub short-circuit) -> extraction chain."""

    def __init__(self, normalizer: InputNormalizer, chain: ExtractionChain) -> None:
        self.normalizer = normalizer
        self.chain = chain

    async def parse(self, raw: RawInput, kind: Union[InputKind, str]) -> ParsedRecipeData:
        normalized = await self.normalizer.normalize(raw, kind)
        if normalized.is_stub:
            logger.info("parse.stub kind=%s", normalized.source_kind.value)
            return stub_recipe(normalized.text)

        prompt = "recipe_transcript" if normalized.source_kind is InputKind.VIDEO else "recipe_text"
        return await self.chain.extract_text(normalized.text, prompt=prompt)

    async def parse_text(self, text: str) -> ParsedRecipeData:
        return await self.parse(text, InputKind.TEXT)

    async def parse_link(self, url: str) -> ParsedRecipeData:
        return await self.parse(url, InputKind.URL)

    async def parse_images(self, paths: Sequence[Union[str, Path]]) -> ParsedRecipeData:
        """
        Photos go straight to the vision-capable providers.

        Raises:
            ImageParseError: No image could be read, or no provider could read them.
        """
        images = await prepare_images(paths)
        logger.info("parse.images count=%d", len(images))
        return await self.chain.extract_images(images)


def build_recipe_parser(
    settings: "Settings",
    client: httpx.AsyncClient,
    transcripts: Optional[TranscriptSource] = None,
) -> RecipeParser:
    normalizer = InputNormalizer(client, transcripts=transcripts, user_agent=settings.USER_AGENT)
    chain = chain_from_settings(settings, client)
    return RecipeParser(normalizer, chain)
