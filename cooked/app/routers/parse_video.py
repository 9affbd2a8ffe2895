from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Optional, TypeVar

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from cooked.app.deps import get_video_pipeline
from cooked.app.domain.errors import (
    TranscriptionConfigurationError,
    TranscriptTimeoutError,
    TranscriptUnavailableError,
)
from cooked.app.schemas.parse_video import ErrorResponse, ParseVideoRequest, ParseVideoResponse
from cooked.services.errors import InputError, UpstreamHttpError
from cooked.services.url_safety import redact_url
from cooked.services.video import VideoPipeline

log = logging.getLogger("parse_video")
router = APIRouter(tags=["parse-video"])

T = TypeVar("T")

DISCONNECT_POLL_SECONDS = 1.0
CLIENT_CLOSED_STATUS = 499


class ClientDisconnected(Exception):
    pass


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _run_until_disconnect(request: Request, work: Awaitable[T], poll_seconds: Optional[float] = None) -> T:
    """Await `work`, cancelling it if the client goes away first."""
    if poll_seconds is None:
        poll_seconds = DISCONNECT_POLL_SECONDS
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_seconds)
            if done:
                return task.result()
            if await request.is_disconnected():
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


@router.post(
    "/parse-video",
    response_model=ParseVideoResponse,
    response_model_exclude_none=True,
    responses={code: {"model": ErrorResponse} for code in (400, 408, 422, 500)},
)
async def parse_video(
    body: ParseVideoRequest,
    request: Request,
    pipeline: VideoPipeline = Depends(get_video_pipeline),
):
    t0 = time.perf_counter()
    url = body.url.strip()
    log.info("parse_video.start url=%s", redact_url(url))

    try:
        result = await _run_until_disconnect(request, pipeline.run(url))
    except InputError as exc:
        log.info("parse_video.rejected url=%s reason=%s", redact_url(url), exc)
        return _error(400, str(exc))
    except TranscriptTimeoutError as exc:
        log.warning("parse_video.timeout url=%s dt=%.2fs", redact_url(url), time.perf_counter() - t0)
        return _error(408, str(exc))
    except TranscriptUnavailableError as exc:
        log.warning("parse_video.unavailable url=%s reason=%s", redact_url(url), exc.reason)
        return _error(422, str(exc))
    except TranscriptionConfigurationError as exc:
        log.error("parse_video.misconfigured url=%s error=%s", redact_url(url), exc)
        return _error(500, str(exc))
    except UpstreamHttpError as exc:
        log.warning("parse_video.upstream url=%s provider=%s status=%d", redact_url(url), exc.provider, exc.status_code)
        status_code = exc.status_code if 400 <= exc.status_code <= 599 else 502
        return _error(status_code, str(exc))
    except ClientDisconnected:
        log.info("parse_video.disconnected url=%s dt=%.2fs", redact_url(url), time.perf_counter() - t0)
        return _error(CLIENT_CLOSED_STATUS, "Client disconnected.")
    except Exception:
        log.exception("parse_video.fail url=%s dt=%.2fs", redact_url(url), time.perf_counter() - t0)
        return _error(500, "Failed to parse video.")

    dt = time.perf_counter() - t0
    log.info("parse_video.ok url=%s source=%s dt=%.2fs", redact_url(url), result.source, dt)
    return ParseVideoResponse.model_validate(result.to_dict())
