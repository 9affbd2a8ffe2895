from __future__ import annotations

from fastapi import Request

from cooked.services.video import VideoPipeline


def get_video_pipeline(request: Request) -> VideoPipeline:
    """Pipeline built at startup around the process-wide httpx client."""
    return request.app.state.video_pipeline
