# cooked/services/ids.py
import re
import secrets
import time
from typing import Literal, Optional
from urllib.parse import urlsplit

Platform = Literal["youtube"]

_YT_RE = re.compile(
    r"(?:youtu\.be/|youtube\.com/(?:watch\?(?:.*&)?v=|embed/|shorts/|live/))([A-Za-z0-9_-]{11})"
)
_YT_HOST_RE = re.compile(r"(?:^|\.)(?:youtube\.com|youtu\.be)$", re.IGNORECASE)


def is_youtube_url(url: str) -> bool:
    try:
        hostname = urlsplit(url).hostname or ""
    except ValueError:
        return False
    return bool(_YT_HOST_RE.search(hostname))


def youtube_video_id(url: str) -> Optional[str]:
    m = _YT_RE.search(url)
    return m.group(1) if m else None


def detect_caption_platform(url: str) -> Optional[Platform]:
    """Platform whose native captions can be tried before a full transcription."""
    if is_youtube_url(url):
        return "youtube"
    return None


def generate_id() -> str:
    """Short, roughly time-ordered id for locally stored records."""
    return f"{int(time.time() * 1000):x}{secrets.token_hex(4)}"
