from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from cooked.app.domain.models import SourceKind


class InputKind(str, Enum):
    TEXT = "text"
    URL = "url"
    IMAGE = "image"
    VIDEO = "video"


_SOURCE_KIND_BY_INPUT = {
    InputKind.TEXT: SourceKind.TEXT,
    InputKind.URL: SourceKind.LINK,
    InputKind.IMAGE: SourceKind.IMAGE,
    InputKind.VIDEO: SourceKind.VIDEO,
}


@dataclass
class InputMetadata:
    original_url: Optional[str] = None
    image_count: Optional[int] = None
    is_stub: bool = False


@dataclass
class NormalizedInput:
    text: str
    source_kind: InputKind
    metadata: InputMetadata = field(default_factory=InputMetadata)

    @property
    def is_stub(self) -> bool:
        return self.metadata.is_stub

    @property
    def recipe_source(self) -> SourceKind:
        return _SOURCE_KIND_BY_INPUT[self.source_kind]


@dataclass(frozen=True)
class CapabilityResult:
    """Outcome of an optional capability (OCR, transcription): text, or a tagged reason it is unavailable."""
    text: Optional[str]
    unavailable_reason: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.unavailable_reason is None and bool(self.text)

    @classmethod
    def unavailable(cls, reason: str) -> "CapabilityResult":
        return cls(text=None, unavailable_reason=reason)
