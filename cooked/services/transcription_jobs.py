from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol

import httpx

from cooked.app.domain.errors import (
    TranscriptionConfigurationError,
    TranscriptionJobError,
    TranscriptTimeoutError,
    TranscriptUnavailableError,
)
from cooked.app.domain.models import JobStatus, TranscriptionJob, TranscriptResult

from .errors import ProviderTransportError, UpstreamHttpError
from .url_safety import redact_url

logger = logging.getLogger(__name__)

ASSEMBLYAI_BASE = "https://api.assemblyai.com/v2"
SPEECH_MODELS = ("universal-2", "universal-1")
POLL_INTERVAL_SECONDS = 3.0
POLL_TIMEOUT_SECONDS = 5 * 60.0
AUTH_STATUSES = (401, 403)

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]


class Transcriber(ABC):
    """A channel that turns a media URL into transcript text."""

    name: str = "transcriber"

    @abstractmethod
    async def transcribe(self, url: str) -> TranscriptResult:
        """
        Raises:
            TranscriptUnavailableError: The channel could not produce a transcript.
            TranscriptTimeoutError: The channel gave up waiting.
            TranscriptionConfigurationError: The channel is misconfigured.
        """
        pass


class JobStatusSource(Protocol):
    async def get(self, job_id: str) -> TranscriptionJob: ...


class AssemblyAIClient:
    """Thin async client for the AssemblyAI transcript endpoints."""

    name = "AssemblyAI"

    def __init__(self, client: httpx.AsyncClient, api_key: str, base_url: str = ASSEMBLYAI_BASE) -> None:
        self.client = client
        self.api_key = api_key
        self.base_url = base_url

    async def _request(self, method: str, path: str, body: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        try:
            response = await self.client.request(
                method,
                f"{self.base_url}{path}",
                json=body,
                headers={"Authorization": self.api_key, "Content-Type": "application/json"},
            )
        except httpx.HTTPError as error:
            raise ProviderTransportError(self.name, str(error) or type(error).__name__) from error

        if not response.is_success:
            raise UpstreamHttpError(self.name, response.status_code, response.text)

        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    async def submit(self, audio_url: str) -> str:
        data = await self._request(
            "POST",
            "/transcript",
            {"audio_url": audio_url, "speech_models": list(SPEECH_MODELS)},
        )
        job_id = data.get("id")
        if not isinstance(job_id, str) or not job_id:
            raise TranscriptUnavailableError(reason="transcription service returned no job id")
        return job_id

    async def get(self, job_id: str) -> TranscriptionJob:
        data = await self._request("GET", f"/transcript/{job_id}")
        raw_status = data.get("status")
        try:
            status = JobStatus(raw_status)
        except ValueError:
            status = JobStatus.PROCESSING
        text = data.get("text")
        error = data.get("error")
        return TranscriptionJob(
            id=job_id,
            status=status,
            text=text if isinstance(text, str) else None,
            error=error if isinstance(error, str) else None,
        )


class PollState(str, Enum):
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "error"
    TIMED_OUT = "timeout"


class TranscriptPoller:
    """
    Waits for an asynchronous transcription job.

    State machine: polling -> completed | error | timeout. The job is checked,
    then the poller sleeps `interval` (never past the deadline) and checks
    again. Clock and sleep are injectable so the loop can be driven without
    real delays. Cancelling the awaiting task cancels the pending sleep.
    """

    def __init__(
        self,
        jobs: JobStatusSource,
        interval: float = POLL_INTERVAL_SECONDS,
        timeout: float = POLL_TIMEOUT_SECONDS,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.jobs = jobs
        self.interval = interval
        self.timeout = timeout
        self._clock = clock
        self._sleep = sleep

    def _next_state(self, job: TranscriptionJob, deadline: float) -> PollState:
        if job.status is JobStatus.COMPLETED:
            return PollState.COMPLETED
        if job.status is JobStatus.ERROR:
            return PollState.FAILED
        if self._clock() >= deadline:
            return PollState.TIMED_OUT
        return PollState.POLLING

    async def wait(self, job_id: str) -> str:
        deadline = self._clock() + self.timeout
        checks = 0

        while True:
            job = await self.jobs.get(job_id)
            checks += 1
            state = self._next_state(job, deadline)
            logger.debug("transcript.poll job=%s status=%s checks=%d", job_id, job.status.value, checks)

            if state is PollState.COMPLETED:
                text = (job.text or "").strip()
                if not text:
                    raise TranscriptUnavailableError(reason=f"job {job_id} completed without text")
                logger.info("transcript.poll_done job=%s checks=%d chars=%d", job_id, checks, len(text))
                return text

            if state is PollState.FAILED:
                raise TranscriptionJobError(job_id, job.error or "transcription failed")

            if state is PollState.TIMED_OUT:
                logger.warning("transcript.poll_timeout job=%s checks=%d timeout=%.0fs", job_id, checks, self.timeout)
                raise TranscriptTimeoutError(self.timeout)

            remaining = max(0.0, deadline - self._clock())
            await self._sleep(min(self.interval, remaining))


class AssemblyAITranscriber(Transcriber):
    name = "assemblyai"

    def __init__(self, jobs: AssemblyAIClient, poller: TranscriptPoller) -> None:
        self.jobs = jobs
        self.poller = poller

    async def transcribe(self, url: str) -> TranscriptResult:
        logger.info("transcript.submit source=%s url=%s", self.name, redact_url(url))
        try:
            job_id = await self.jobs.submit(url)
        except UpstreamHttpError as error:
            if error.status_code in AUTH_STATUSES:
                raise TranscriptionConfigurationError("Transcription service rejected the API key.") from error
            raise TranscriptUnavailableError(reason=f"submit failed with {error.status_code}") from error
        except ProviderTransportError as error:
            raise TranscriptUnavailableError(reason=error.reason) from error

        try:
            text = await self.poller.wait(job_id)
        except UpstreamHttpError as error:
            if error.status_code in AUTH_STATUSES:
                raise TranscriptionConfigurationError("Transcription service rejected the API key.") from error
            raise
        except ProviderTransportError as error:
            raise TranscriptUnavailableError(reason=error.reason) from error

        return TranscriptResult(text=text, source=self.name)
