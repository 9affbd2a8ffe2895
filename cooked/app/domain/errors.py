from __future__ import annotations

TRANSCRIPT_UNAVAILABLE_MSG = "Transcript unavailable. Please paste recipe text manually."
TRANSCRIPT_TIMEOUT_MSG = "Transcript timed out. Please try again or paste recipe text manually."


class TranscriptionError(Exception):
    pass


class TranscriptUnavailableError(TranscriptionError):
    def __init__(self, message: str = TRANSCRIPT_UNAVAILABLE_MSG, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class TranscriptTimeoutError(TranscriptionError):
    def __init__(self, timeout_seconds: float, message: str = TRANSCRIPT_TIMEOUT_MSG):
        super().__init__(message)
        self.timeout_seconds = timeout_seconds


class TranscriptionConfigurationError(TranscriptionError):
    pass


class TranscriptionJobError(TranscriptUnavailableError):
    def __init__(self, job_id: str, reason: str):
        super().__init__(reason=f"job {job_id}: {reason}")
        self.job_id = job_id


class AudioExtractionError(TranscriptUnavailableError):
    def __init__(self, reason: str):
        super().__init__(reason=reason)
