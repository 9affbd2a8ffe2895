from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from PIL import Image, UnidentifiedImageError
from starlette.concurrency import run_in_threadpool

from .errors import ImageParseError

logger = logging.getLogger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024
# (max side in px, JPEG quality), tried in order until the encoding fits
RESIZE_STEPS: tuple[tuple[int, int], ...] = (
    (2048, 85),
    (1600, 80),
    (1280, 75),
    (1024, 70),
    (800, 60),
)
ACCEPTED_FORMATS = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
    "WEBP": "image/webp",
}


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    media_type: str
    source: str = ""

    @property
    def size(self) -> int:
        return len(self.data)

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.to_base64()}"


def _encode_jpeg(image: Image.Image, max_side: int, quality: int) -> bytes:
    frame = image.convert("RGB")
    frame.thumbnail((max_side, max_side), Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    frame.save(buffer, format="JPEG", quality=quality, optimize=True)
    return buffer.getvalue()


def normalize_image_bytes(
    raw: bytes,
    source: str = "",
    max_bytes: int = MAX_IMAGE_BYTES,
    steps: Sequence[tuple[int, int]] = RESIZE_STEPS,
) -> ImagePayload:
    """
    Return a payload every vendor accepts.

    Images already in an accepted format and under `max_bytes` pass through
    untouched. Anything else is re-encoded as JPEG at progressively lower
    size/quality; the last step is used even if it is still over the ceiling.

    Raises:
        ImageParseError: If Pillow cannot decode the bytes.
    """
    try:
        with Image.open(io.BytesIO(raw)) as image:
            image_format = (image.format or "").upper()
            if image_format in ACCEPTED_FORMATS and len(raw) <= max_bytes:
                return ImagePayload(data=raw, media_type=ACCEPTED_FORMATS[image_format], source=source)

            encoded = b""
            for max_side, quality in steps:
                encoded = _encode_jpeg(image, max_side, quality)
                logger.debug(
                    "images.reencode source=%s side=%d quality=%d bytes=%d",
                    source,
                    max_side,
                    quality,
                    len(encoded),
                )
                if len(encoded) <= max_bytes:
                    break
    except (UnidentifiedImageError, OSError, ValueError) as error:
        raise ImageParseError(f"Unreadable image {source or '<bytes>'}: {error}") from error

    return ImagePayload(data=encoded, media_type="image/jpeg", source=source)


def _load_image_file(path: Path) -> ImagePayload:
    try:
        raw = path.read_bytes()
    except OSError as error:
        raise ImageParseError(f"Unreadable image {path}: {error}") from error
    return normalize_image_bytes(raw, source=str(path))


async def prepare_images(paths: Sequence[str | Path]) -> list[ImagePayload]:
    """
    Read and normalize images one at a time.

    An unreadable image is logged and skipped; if none can be read the whole
    batch fails.
    """
    payloads: list[ImagePayload] = []
    for path in paths:
        try:
            payload = await run_in_threadpool(_load_image_file, Path(path))
        except ImageParseError as error:
            logger.warning("images.skip path=%s error=%s", path, error)
            continue
        payloads.append(payload)

    if not payloads:
        raise ImageParseError("None of the provided images could be read.")
    return payloads
