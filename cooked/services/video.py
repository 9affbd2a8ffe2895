from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from cooked.app.domain.models import ParsedRecipeData

from .chain import ExtractionChain, chain_from_settings
from .transcript import TranscriptAcquirer, build_transcript_acquirer
from .url_safety import redact_url

if TYPE_CHECKING:
    from cooked.app.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoParseResult:
    recipe: ParsedRecipeData
    source: str

    def to_dict(self) -> dict[str, Any]:
        return {"recipe": self.recipe.to_dict(), "source": self.source}


async def parse_video_to_recipe(
    url: str,
    acquirer: TranscriptAcquirer,
    chain: ExtractionChain,
) -> VideoParseResult:
    """
    Transcript first, then the extraction chain with the transcript prompt.

    Transcript errors propagate unchanged so the caller can map them to a
    response. Extraction never fails outright: the heuristic parser is the
    floor.
    """
    transcript = await acquirer.acquire(url)
    logger.info(
        "video.transcript url=%s source=%s chars=%d",
        redact_url(url),
        transcript.source,
        len(transcript.text),
    )
    recipe = await chain.extract_text(transcript.text, prompt="recipe_transcript")
    return VideoParseResult(recipe=recipe, source=transcript.source)


class VideoPipeline:
    """The acquirer and chain built once per process and shared by requests."""

    def __init__(self, acquirer: TranscriptAcquirer, chain: ExtractionChain) -> None:
        self.acquirer = acquirer
        self.chain = chain

    async def run(self, url: str) -> VideoParseResult:
        return await parse_video_to_recipe(url, self.acquirer, self.chain)


def build_video_pipeline(settings: "Settings", client: httpx.AsyncClient) -> VideoPipeline:
    chain = chain_from_settings(settings, client)
    logger.info("video.pipeline providers=%s", ",".join(chain.configured_providers) or "none")
    return VideoPipeline(build_transcript_acquirer(settings, client), chain)
