from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from starlette.concurrency import run_in_threadpool
from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    YouTubeTranscriptApi,
)

from .ids import detect_caption_platform, youtube_video_id
from .url_safety import redact_url

logger = logging.getLogger(__name__)

TRANSCRIPTAPI_BASE = "https://transcriptapi.com/api/v2"
PRIORITY_LANGUAGES = ("en", "en-US", "en-GB")
WHITESPACE_PATTERN = re.compile(r"\s+")


def _join_segments(segments: object) -> Optional[str]:
    if not isinstance(segments, list):
        return None
    text_parts = [
        item.get("text", "").strip()
        for item in segments
        if isinstance(item, dict) and isinstance(item.get("text"), str)
    ]
    full_text = WHITESPACE_PATTERN.sub(" ", " ".join(text_parts)).strip()
    return full_text or None


class CaptionSource(ABC):
    """An existing caption track for a video. Returns None when there is none."""

    name: str = "captions"

    def supports(self, url: str) -> bool:
        return detect_caption_platform(url) == "youtube"

    @abstractmethod
    async def fetch(self, url: str) -> Optional[str]:
        pass


class YouTubeNativeCaptions(CaptionSource):
    name = "youtube_captions"

    def __init__(self, languages: tuple[str, ...] = PRIORITY_LANGUAGES) -> None:
        self.languages = languages

    def _fetch_segments(self, video_id: str) -> Optional[list[dict]]:
        api = YouTubeTranscriptApi()
        try:
            fetched = api.fetch(video_id, languages=list(self.languages))
        except NoTranscriptFound:
            # No preferred language: take whatever track exists.
            first = next(iter(api.list(video_id)), None)
            if first is None:
                return None
            fetched = first.fetch()
        return fetched.to_raw_data()

    async def fetch(self, url: str) -> Optional[str]:
        video_id = youtube_video_id(url)
        if not video_id:
            return None

        try:
            segments = await run_in_threadpool(self._fetch_segments, video_id)
        except CouldNotRetrieveTranscript as error:
            logger.info("captions.none source=%s video=%s reason=%s", self.name, video_id, type(error).__name__)
            return None
        except OSError as error:
            logger.warning("captions.network_error source=%s video=%s error=%s", self.name, video_id, error)
            return None

        return _join_segments(segments)


class TranscriptApiCaptions(CaptionSource):
    """Third-party captioning API (transcriptapi.com) for YouTube videos."""

    name = "transcriptapi"

    def __init__(self, client: httpx.AsyncClient, api_key: str, base_url: str = TRANSCRIPTAPI_BASE) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url

    async def fetch(self, url: str) -> Optional[str]:
        try:
            response = await self.client.get(
                f"{self.base_url}/youtube/transcript",
                params={"video_url": url, "format": "json", "include_timestamp": "false"},
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as error:
            logger.warning("captions.network_error source=%s url=%s error=%s", self.name, redact_url(url), error)
            return None

        if not response.is_success:
            logger.warning(
                "captions.http_error source=%s url=%s status=%d",
                self.name,
                redact_url(url),
                response.status_code,
            )
            return None

        try:
            data = response.json()
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        return _join_segments(data.get("transcript"))
