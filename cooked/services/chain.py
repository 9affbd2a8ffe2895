from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence

import httpx

from cooked.app.domain.models import ParsedRecipeData

from .errors import ImageParseError, ProviderError, ProviderUnavailable, UpstreamHttpError
from .heuristic import HeuristicRecipeParser
from .images import ImagePayload
from .prompt import PromptName, build_prompt
from .providers import (
    AnthropicProvider,
    ExtractionPayload,
    ExtractionProvider,
    GeminiProvider,
    OpenAIProvider,
)

if TYPE_CHECKING:
    from cooked.app.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderSlot:
    provider: ExtractionProvider
    credential: Optional[str]

    @property
    def configured(self) -> bool:
        return bool(self.credential)


class ExtractionChain:
    """
    Ranked list of extraction providers tried one after another.

    Each configured provider is attempted once; the first one that returns a
    parseable recipe wins. Providers without a credential are skipped. There
    is no retry inside a provider: the next provider is the retry.
    """

    def __init__(
        self,
        slots: Sequence[ProviderSlot],
        heuristic: Optional[HeuristicRecipeParser] = None,
    ) -> None:
        self.slots = list(slots)
        self.heuristic = heuristic or HeuristicRecipeParser()

    @property
    def configured_providers(self) -> list[str]:
        return [slot.provider.name for slot in self.slots if slot.configured]

    async def extract(self, payload: ExtractionPayload) -> ParsedRecipeData:
        """
        Run the chain.

        Raises:
            ProviderUnavailable: No provider is configured, or every configured one failed.
        """
        attempted: list[str] = []
        for slot in self.slots:
            provider = slot.provider
            if not slot.configured:
                continue
            if payload.has_images and not provider.supports_images:
                continue

            attempted.append(provider.name)
            logger.info("extract.try provider=%s images=%d", provider.name, len(payload.images))
            try:
                result = await provider.try_extract(payload, slot.credential)
            except UpstreamHttpError as error:
                logger.warning(
                    "extract.fail provider=%s status=%d body=%s",
                    provider.name,
                    error.status_code,
                    error.body[:500],
                )
                continue
            except ProviderError as error:
                logger.warning("extract.fail provider=%s error=%s", provider.name, error)
                continue

            logger.info("extract.ok provider=%s", provider.name)
            return result

        if not attempted:
            raise ProviderUnavailable()
        raise ProviderUnavailable("All AI providers failed to parse the recipe.", attempted=attempted)

    async def extract_text(self, text: str, prompt: PromptName = "recipe_text") -> ParsedRecipeData:
        """Text path: AI providers first, then the heuristic parser."""
        try:
            return await self.extract(ExtractionPayload(prompt=build_prompt(prompt, text)))
        except ProviderUnavailable as error:
            logger.info("extract.heuristic_fallback reason=%s", error)
            return self.heuristic.parse(text)

    async def extract_images(self, images: Sequence[ImagePayload]) -> ParsedRecipeData:
        """Image path: AI providers only, no heuristic fallback."""
        if not images:
            raise ImageParseError("No images provided.")
        payload = ExtractionPayload(prompt=build_prompt("recipe_images"), images=list(images))
        try:
            return await self.extract(payload)
        except ProviderUnavailable as error:
            logger.warning("extract.images_fail attempted=%s", ",".join(error.attempted) or "none")
            raise ImageParseError() from error


def build_default_chain(
    client: httpx.AsyncClient,
    *,
    anthropic_key: Optional[str],
    openai_key: Optional[str],
    gemini_key: Optional[str],
    anthropic_model: str = "claude-sonnet-4-20250514",
    openai_model: str = "gpt-4o-mini",
    gemini_model: str = "gemini-2.0-flash",
) -> ExtractionChain:
    """Anthropic, then OpenAI, then Gemini."""
    return ExtractionChain(
        [
            ProviderSlot(AnthropicProvider(client, model=anthropic_model), anthropic_key),
            ProviderSlot(OpenAIProvider(client, model=openai_model), openai_key),
            ProviderSlot(GeminiProvider(model=gemini_model), gemini_key),
        ]
    )


def chain_from_settings(settings: "Settings", client: httpx.AsyncClient) -> ExtractionChain:
    return build_default_chain(
        client,
        anthropic_key=settings.ANTHROPIC_API_KEY,
        openai_key=settings.OPENAI_API_KEY,
        gemini_key=settings.GEMINI_API_KEY,
        anthropic_model=settings.ANTHROPIC_MODEL,
        openai_model=settings.OPENAI_MODEL,
        gemini_model=settings.GEMINI_MODEL,
    )
