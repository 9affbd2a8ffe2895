from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence

import httpx

from cooked.app.domain.errors import (
    TranscriptionConfigurationError,
    TranscriptTimeoutError,
    TranscriptUnavailableError,
)
from cooked.app.domain.models import TranscriptResult

from .audio import AudioExtractionTranscriber
from .captions import CaptionSource, TranscriptApiCaptions, YouTubeNativeCaptions
from .ids import detect_caption_platform
from .transcription_jobs import (
    AssemblyAIClient,
    AssemblyAITranscriber,
    Clock,
    Sleep,
    Transcriber,
    TranscriptPoller,
)
from .url_safety import redact_url, validate_public_url

if TYPE_CHECKING:
    from cooked.app.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_TRANSCRIPT_MIN_CHARS = 32


class TranscriptAcquirer:
    """
    Video URL -> transcript text.

    Existing captions are tried first because they are free and instant. When
    none are usable the URL goes to the transcription channels in order. A
    channel that reports the transcript as unavailable hands over to the next
    one; timeouts and configuration problems end the acquisition.
    """

    def __init__(
        self,
        caption_sources: Sequence[CaptionSource],
        transcribers: Sequence[Transcriber],
        min_chars: int = DEFAULT_TRANSCRIPT_MIN_CHARS,
    ) -> None:
        self.caption_sources = list(caption_sources)
        self.transcribers = list(transcribers)
        self.min_chars = min_chars

    async def _from_captions(self, url: str) -> Optional[TranscriptResult]:
        for source in self.caption_sources:
            if not source.supports(url):
                continue
            text = await source.fetch(url)
            if not text or len(text.strip()) < self.min_chars:
                logger.info("transcript.captions_miss source=%s url=%s", source.name, redact_url(url))
                continue
            logger.info("transcript.captions_ok source=%s url=%s chars=%d", source.name, redact_url(url), len(text))
            return TranscriptResult(text=text.strip(), source=source.name)
        return None

    async def acquire(self, url: str) -> TranscriptResult:
        """
        Raises:
            UnsafeURLError: The URL is malformed or points at a private address.
            TranscriptUnavailableError: No channel produced a transcript.
            TranscriptTimeoutError: A transcription job did not finish in time.
            TranscriptionConfigurationError: A vendor rejected its key, or the URL
                needs transcription and no channel is configured.
            UpstreamHttpError: A transcription job poll failed with an HTTP error.
        """
        safe_url = validate_public_url(url)

        captioned = await self._from_captions(safe_url)
        if captioned is not None:
            return captioned

        if not self.transcribers:
            if detect_caption_platform(safe_url) is not None:
                raise TranscriptUnavailableError(reason="no captions and no transcription service configured")
            raise TranscriptionConfigurationError("No transcription service is configured.")

        last_error: Optional[TranscriptUnavailableError] = None
        for transcriber in self.transcribers:
            try:
                return await transcriber.transcribe(safe_url)
            except TranscriptUnavailableError as error:
                logger.warning(
                    "transcript.channel_fail source=%s url=%s reason=%s",
                    transcriber.name,
                    redact_url(safe_url),
                    error.reason,
                )
                last_error = error
            except TranscriptTimeoutError:
                logger.warning("transcript.channel_timeout source=%s url=%s", transcriber.name, redact_url(safe_url))
                raise

        raise TranscriptUnavailableError(reason=last_error.reason if last_error else None)


def build_transcript_acquirer(
    settings: "Settings",
    client: httpx.AsyncClient,
    clock: Optional[Clock] = None,
    sleep: Optional[Sleep] = None,
) -> TranscriptAcquirer:
    """Wire the channels that the current settings enable."""
    caption_sources: list[CaptionSource] = [YouTubeNativeCaptions()]
    if settings.TRANSCRIPTAPI_API_KEY:
        caption_sources.append(TranscriptApiCaptions(client, settings.TRANSCRIPTAPI_API_KEY))

    transcribers: list[Transcriber] = []
    if settings.ASSEMBLYAI_API_KEY:
        poller_kwargs = {}
        if clock is not None:
            poller_kwargs["clock"] = clock
        if sleep is not None:
            poller_kwargs["sleep"] = sleep
        jobs = AssemblyAIClient(client, settings.ASSEMBLYAI_API_KEY)
        poller = TranscriptPoller(
            jobs,
            interval=settings.TRANSCRIPT_POLL_INTERVAL_SECONDS,
            timeout=settings.TRANSCRIPT_POLL_TIMEOUT_SECONDS,
            **poller_kwargs,
        )
        transcribers.append(AssemblyAITranscriber(jobs, poller))

    if settings.AUDIO_EXTRACTION_ENABLED and settings.OPENAI_API_KEY:
        transcribers.append(AudioExtractionTranscriber(client, settings.OPENAI_API_KEY))

    logger.info(
        "transcript.channels captions=%s transcribers=%s",
        ",".join(source.name for source in caption_sources),
        ",".join(transcriber.name for transcriber in transcribers) or "none",
    )
    return TranscriptAcquirer(caption_sources, transcribers, min_chars=settings.TRANSCRIPT_MIN_CHARS)
