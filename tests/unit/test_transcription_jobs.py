from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from cooked.app.domain.errors import (
    TranscriptionConfigurationError,
    TranscriptionJobError,
    TranscriptTimeoutError,
    TranscriptUnavailableError,
)
from cooked.app.domain.models import JobStatus, TranscriptionJob
from cooked.services.errors import UpstreamHttpError
from cooked.services.transcription_jobs import (
    AssemblyAIClient,
    AssemblyAITranscriber,
    TranscriptPoller,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class JobsStub:
    def __init__(self, statuses: list[JobStatus], text: str | None = "the transcript", error: str | None = None) -> None:
        self.statuses = statuses
        self.text = text
        self.error = error
        self.calls = 0

    async def get(self, job_id: str) -> TranscriptionJob:
        status = self.statuses[min(self.calls, len(self.statuses) - 1)]
        self.calls += 1
        return TranscriptionJob(
            id=job_id,
            status=status,
            text=self.text if status is JobStatus.COMPLETED else None,
            error=self.error if status is JobStatus.ERROR else None,
        )


def _poller(jobs: JobsStub, clock: FakeClock, interval: float = 3.0, timeout: float = 300.0) -> TranscriptPoller:
    return TranscriptPoller(jobs, interval=interval, timeout=timeout, clock=clock, sleep=clock.sleep)


class TestTranscriptPoller:
    def test_completes_after_two_processing_polls(self) -> None:
        jobs = JobsStub([JobStatus.PROCESSING, JobStatus.PROCESSING, JobStatus.COMPLETED])
        clock = FakeClock()

        text = asyncio.run(_poller(jobs, clock).wait("job-1"))

        assert text == "the transcript"
        assert jobs.calls == 3
        assert clock.sleeps == [3.0, 3.0]

    def test_queued_then_completed(self) -> None:
        jobs = JobsStub([JobStatus.QUEUED, JobStatus.COMPLETED])
        assert asyncio.run(_poller(jobs, FakeClock()).wait("job-1")) == "the transcript"

    def test_never_completes_times_out(self) -> None:
        jobs = JobsStub([JobStatus.PROCESSING])
        clock = FakeClock()

        with pytest.raises(TranscriptTimeoutError) as exc_info:
            asyncio.run(_poller(jobs, clock, interval=3.0, timeout=10.0).wait("job-1"))

        assert exc_info.value.timeout_seconds == 10.0
        assert clock.now == 10.0
        # the last sleep is clipped to the deadline
        assert clock.sleeps == [3.0, 3.0, 3.0, 1.0]
        assert jobs.calls == 5

    def test_job_error(self) -> None:
        jobs = JobsStub([JobStatus.PROCESSING, JobStatus.ERROR], error="media not found")
        with pytest.raises(TranscriptionJobError) as exc_info:
            asyncio.run(_poller(jobs, FakeClock()).wait("job-9"))
        assert exc_info.value.job_id == "job-9"
        assert "media not found" in exc_info.value.reason
        assert isinstance(exc_info.value, TranscriptUnavailableError)

    def test_completed_with_empty_text_is_unavailable(self) -> None:
        jobs = JobsStub([JobStatus.COMPLETED], text="   ")
        with pytest.raises(TranscriptUnavailableError):
            asyncio.run(_poller(jobs, FakeClock()).wait("job-1"))

    def test_cancellation_propagates_out_of_sleep(self) -> None:
        jobs = JobsStub([JobStatus.PROCESSING])

        async def scenario() -> None:
            poller = TranscriptPoller(jobs, interval=30.0, timeout=300.0)
            task = asyncio.create_task(poller.wait("job-1"))
            await asyncio.sleep(0.01)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(scenario())
        assert jobs.calls == 1


def _assembly(handler) -> tuple[httpx.AsyncClient, AssemblyAIClient]:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return client, AssemblyAIClient(client, "aai-key")


class TestAssemblyAIClient:
    def test_submit_and_get(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.method == "POST":
                return httpx.Response(200, json={"id": "tx-1", "status": "queued"})
            return httpx.Response(200, json={"id": "tx-1", "status": "completed", "text": "hello"})

        async def scenario():
            client, jobs = _assembly(handler)
            async with client:
                job_id = await jobs.submit("https://cdn.example.com/video.mp4")
                return job_id, await jobs.get(job_id)

        job_id, job = asyncio.run(scenario())

        assert job_id == "tx-1"
        assert job.status is JobStatus.COMPLETED
        assert job.text == "hello"
        assert seen[0].headers["authorization"] == "aai-key"
        assert json.loads(seen[0].content) == {
            "audio_url": "https://cdn.example.com/video.mp4",
            "speech_models": ["universal-2", "universal-1"],
        }
        assert seen[1].url.path == "/v2/transcript/tx-1"

    def test_unknown_status_is_treated_as_processing(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "warming_up"})

        async def scenario():
            client, jobs = _assembly(handler)
            async with client:
                return await jobs.get("tx-1")

        assert asyncio.run(scenario()).status is JobStatus.PROCESSING

    def test_submit_without_id(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={})

        async def scenario():
            client, jobs = _assembly(handler)
            async with client:
                return await jobs.submit("https://cdn.example.com/a.mp3")

        with pytest.raises(TranscriptUnavailableError):
            asyncio.run(scenario())


class TestAssemblyAITranscriber:
    def _run(self, handler):
        async def scenario():
            client, jobs = _assembly(handler)
            clock = FakeClock()
            poller = TranscriptPoller(jobs, interval=1.0, timeout=5.0, clock=clock, sleep=clock.sleep)
            async with client:
                return await AssemblyAITranscriber(jobs, poller).transcribe("https://cdn.example.com/v.mp4")

        return asyncio.run(scenario())

    def test_happy_path(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"id": "tx-1"})
            return httpx.Response(200, json={"status": "completed", "text": "stir the sauce"})

        result = self._run(handler)
        assert result.text == "stir the sauce"
        assert result.source == "assemblyai"

    @pytest.mark.parametrize("status", [401, 403])
    def test_rejected_key_is_configuration_error(self, status: int) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, text="Invalid API key")

        with pytest.raises(TranscriptionConfigurationError):
            self._run(handler)

    def test_submit_failure_is_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, text="bad audio url")

        with pytest.raises(TranscriptUnavailableError):
            self._run(handler)

    def test_poll_http_error_propagates_with_status(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST":
                return httpx.Response(200, json={"id": "tx-1"})
            return httpx.Response(503, text="maintenance")

        with pytest.raises(UpstreamHttpError) as exc_info:
            self._run(handler)
        assert exc_info.value.status_code == 503
