from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import httpx
import yt_dlp
from starlette.concurrency import run_in_threadpool

from cooked.app.domain.errors import AudioExtractionError, TranscriptionConfigurationError
from cooked.app.domain.models import TranscriptResult

from .transcription_jobs import AUTH_STATUSES, Transcriber
from .url_safety import redact_url

logger = logging.getLogger(__name__)

OPENAI_TRANSCRIPTIONS_URL = "https://api.openai.com/v1/audio/transcriptions"
MAX_AUDIO_BYTES = 25 * 1024 * 1024
MIN_TRANSCRIPT_CHARS = 10


def _create_ydl_options(output_dir: Path) -> dict:
    return {
        "quiet": True,
        "noprogress": True,
        "check_formats": False,
        "format": "bestaudio/best",
        "outtmpl": str(output_dir / "%(id)s.%(ext)s"),
        "extractor_args": {"youtube": {"player_client": ["android"]}},
        "postprocessors": [{
            "key": "FFmpegExtractAudio",
            "preferredcodec": "mp3",
            "preferredquality": "64",
        }],
    }


def _extract_audio_filepath(info: dict, output_dir: Path) -> Optional[Path]:
    requested = info.get("requested_downloads")
    if requested:
        first = requested[0]
        candidate = first.get("filepath") or first.get("filename")
        if candidate and Path(candidate).exists():
            return Path(candidate)

    # Postprocessing renames the file; fall back to whatever landed in the dir.
    files = sorted(path for path in output_dir.iterdir() if path.is_file())
    return files[0] if files else None


def download_audio(url: str, output_dir: Path) -> Path:
    try:
        with yt_dlp.YoutubeDL(_create_ydl_options(output_dir)) as ydl:
            info = ydl.extract_info(url, download=True)
    except yt_dlp.utils.DownloadError as error:
        raise AudioExtractionError(f"audio download failed: {error}") from error
    except (ConnectionError, TimeoutError) as error:
        raise AudioExtractionError(f"network error while downloading audio: {error}") from error

    audio_path = _extract_audio_filepath(info or {}, output_dir)
    if audio_path is None:
        raise AudioExtractionError("no audio file was produced")
    return audio_path


def _cleanup_temp_dir(temp_dir: Path) -> None:
    if not temp_dir.exists():
        return
    try:
        shutil.rmtree(temp_dir)
        logger.debug("Cleaned up temp dir: %s", temp_dir)
    except OSError as os_error:
        logger.warning("Failed to cleanup temp dir %s: %s", temp_dir, os_error)


def _cleanup_after_download(download: "asyncio.Future[Path]", temp_dir: Path) -> None:
    if not download.cancelled() and download.exception() is not None:
        logger.info("transcript.audio_abandoned dir=%s error=%s", temp_dir, download.exception())
    _cleanup_temp_dir(temp_dir)


class AudioExtractionTranscriber(Transcriber):
    """
    Last-resort channel: download the audio track with yt-dlp and send it to
    the OpenAI transcription endpoint. The temporary directory is removed on
    every exit path.
    """

    name = "whisper"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str = "whisper-1",
        language: str = "en",
        max_bytes: int = MAX_AUDIO_BYTES,
        temp_root: Optional[str] = None,
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.model = model
        self.language = language
        self.max_bytes = max_bytes
        self.temp_root = temp_root

    async def _transcribe_file(self, audio_path: Path) -> str:
        size = audio_path.stat().st_size
        if size > self.max_bytes:
            raise AudioExtractionError(f"audio is {size} bytes, limit is {self.max_bytes}")

        audio_bytes = await run_in_threadpool(audio_path.read_bytes)
        try:
            response = await self.client.post(
                OPENAI_TRANSCRIPTIONS_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                data={"model": self.model, "language": self.language, "response_format": "text"},
                files={"file": (audio_path.name, audio_bytes, "audio/mpeg")},
            )
        except httpx.HTTPError as error:
            raise AudioExtractionError(f"transcription request failed: {error}") from error

        if response.status_code in AUTH_STATUSES:
            raise TranscriptionConfigurationError("Audio transcription service rejected the API key.")
        if not response.is_success:
            raise AudioExtractionError(f"transcription API error {response.status_code}")

        text = response.text.strip()
        if len(text) < MIN_TRANSCRIPT_CHARS:
            raise AudioExtractionError("transcription returned too little text")
        return text

    async def transcribe(self, url: str) -> TranscriptResult:
        temp_dir = Path(tempfile.mkdtemp(prefix="cooked-audio-", dir=self.temp_root))
        logger.info("transcript.audio_start url=%s dir=%s", redact_url(url), temp_dir)
        download = asyncio.ensure_future(run_in_threadpool(download_audio, url, temp_dir))
        try:
            audio_path = await asyncio.shield(download)
            text = await self._transcribe_file(audio_path)
        finally:
            if download.done():
                _cleanup_temp_dir(temp_dir)
            else:
                # cancelled while yt-dlp is still writing into temp_dir
                download.add_done_callback(lambda finished: _cleanup_after_download(finished, temp_dir))

        logger.info("transcript.audio_ok url=%s chars=%d", redact_url(url), len(text))
        return TranscriptResult(text=text, source=self.name)
