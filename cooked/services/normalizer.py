from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence, Union

import httpx

from cooked.app.domain.errors import TranscriptionError
from cooked.app.domain.models import TranscriptResult

from .errors import UnsupportedInputKind
from .html_text import strip_html_to_text
from .types import CapabilityResult, InputKind, InputMetadata, NormalizedInput
from .url_safety import redact_url, validate_public_url

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; CookedApp/1.0)"
MAX_REDIRECTS = 5

RawInput = Union[str, Sequence[str]]


class OcrProvider(Protocol):
    async def extract_text(self, image_uris: Sequence[str]) -> CapabilityResult: ...


class TranscriptSource(Protocol):
    async def acquire(self, url: str) -> TranscriptResult: ...


class UnconfiguredOcr:
    """Placeholder OCR: always reports itself unavailable."""

    async def extract_text(self, image_uris: Sequence[str]) -> CapabilityResult:
        logger.info("normalize.ocr_stub images=%d", len(image_uris))
        return CapabilityResult.unavailable("OCR processing is not yet configured.")


def _url_stub(url: str) -> str:
    return f"Recipe from URL: {url}\n\nUnable to fetch content automatically. Please paste the recipe text manually."


def _image_stub(count: int, reason: str) -> str:
    return "\n".join([
        f"[Image-based recipe input - {count} image(s) provided]",
        "",
        reason,
        "To enable image-to-text extraction, configure an OCR provider",
        "or send the photos through the image parsing flow instead.",
        "",
        "For now, please paste the recipe text manually.",
    ])


def _video_stub(url: str, reason: str) -> str:
    return "\n".join([
        f"[Video recipe input - URL: {url}]",
        "",
        reason,
        "To enable video-to-text extraction, set ASSEMBLYAI_API_KEY",
        "or enable AUDIO_EXTRACTION_ENABLED with an OpenAI key.",
        "",
        "For now, please paste the recipe text manually.",
    ])


class InputNormalizer:
    """Turns raw user input of any kind into plain text for the extraction chain."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        ocr: Optional[OcrProvider] = None,
        transcripts: Optional[TranscriptSource] = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ) -> None:
        self.client = client
        self.ocr = ocr or UnconfiguredOcr()
        self.transcripts = transcripts
        self.user_agent = user_agent

    async def normalize(self, raw: RawInput, kind: Union[InputKind, str]) -> NormalizedInput:
        """
        Raises:
            UnsupportedInputKind: `kind` is not text, url, image or video.
            UnsafeURLError: A link or video URL is malformed or points at a private address.
        """
        try:
            input_kind = InputKind(kind)
        except ValueError as error:
            raise UnsupportedInputKind(kind) from error

        if input_kind is InputKind.TEXT:
            return self._normalize_text(raw)
        if input_kind is InputKind.URL:
            return await self._normalize_url(raw)
        if input_kind is InputKind.IMAGE:
            return await self._normalize_images(raw)
        return await self._normalize_video(raw)

    def _normalize_text(self, raw: RawInput) -> NormalizedInput:
        text = raw if isinstance(raw, str) else "\n".join(raw)
        return NormalizedInput(text=text.strip(), source_kind=InputKind.TEXT)

    async def _fetch_page(self, url: str) -> httpx.Response:
        """
        GET with redirects followed by hand, so every hop passes the same
        public-address check as the submitted URL.

        Raises:
            UnsafeURLError: A redirect points at an internal or private address.
            httpx.HTTPError: Transport failure, non-2xx answer or too many redirects.
        """
        headers = {"User-Agent": self.user_agent, "Accept": "text/html"}
        response = await self.client.get(url, headers=headers, follow_redirects=False)
        for _ in range(MAX_REDIRECTS):
            if not response.is_redirect:
                break
            next_url = validate_public_url(str(response.url.join(response.headers["Location"])))
            logger.info("normalize.url_redirect from=%s to=%s", redact_url(str(response.url)), redact_url(next_url))
            response = await self.client.get(next_url, headers=headers, follow_redirects=False)
        else:
            if response.is_redirect:
                raise httpx.TooManyRedirects("Exceeded maximum allowed redirects.", request=response.request)
        response.raise_for_status()
        return response

    async def _normalize_url(self, raw: RawInput) -> NormalizedInput:
        url = validate_public_url(raw if isinstance(raw, str) else raw[0])
        try:
            response = await self._fetch_page(url)
        except httpx.HTTPError as error:
            logger.warning("normalize.url_fail url=%s error=%s", redact_url(url), error)
            return NormalizedInput(
                text=_url_stub(url),
                source_kind=InputKind.URL,
                metadata=InputMetadata(original_url=url, is_stub=True),
            )

        text = strip_html_to_text(response.text)
        logger.info("normalize.url_ok url=%s chars=%d", redact_url(url), len(text))
        return NormalizedInput(
            text=text,
            source_kind=InputKind.URL,
            metadata=InputMetadata(original_url=url),
        )

    async def _normalize_images(self, raw: RawInput) -> NormalizedInput:
        image_uris = [raw] if isinstance(raw, str) else list(raw)
        result = await self.ocr.extract_text(image_uris)

        if not result.available:
            return NormalizedInput(
                text=_image_stub(len(image_uris), result.unavailable_reason or "No text found in the images."),
                source_kind=InputKind.IMAGE,
                metadata=InputMetadata(image_count=len(image_uris), is_stub=True),
            )

        return NormalizedInput(
            text=(result.text or "").strip(),
            source_kind=InputKind.IMAGE,
            metadata=InputMetadata(image_count=len(image_uris)),
        )

    async def _normalize_video(self, raw: RawInput) -> NormalizedInput:
        url = validate_public_url(raw if isinstance(raw, str) else raw[0])

        if self.transcripts is None:
            reason = "Video transcription is not configured."
        else:
            try:
                transcript = await self.transcripts.acquire(url)
            except TranscriptionError as error:
                logger.warning("normalize.video_fail url=%s error=%s", redact_url(url), error)
                reason = str(error)
            else:
                return NormalizedInput(
                    text=transcript.text,
                    source_kind=InputKind.VIDEO,
                    metadata=InputMetadata(original_url=url),
                )

        return NormalizedInput(
            text=_video_stub(url, reason),
            source_kind=InputKind.VIDEO,
            metadata=InputMetadata(original_url=url, is_stub=True),
        )
