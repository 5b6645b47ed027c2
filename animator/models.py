"""Data models for the image-to-video generation workflow."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from veo_client.models import GenerationJob


class AspectRatio(str, enum.Enum):
    LANDSCAPE = "16:9"
    PORTRAIT = "9:16"


class Slot(str, enum.Enum):
    """Logical positions that each hold at most one live resource handle."""
    PREVIEW = "preview"
    RESULT = "result"


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    ENCODING = "encoding"
    SUBMISSION = "submission"
    POLLING = "polling"
    MISSING_RESULT = "missing_result"
    ASSET_FETCH = "asset_fetch"
    AUTH = "auth"
    TIMEOUT = "timeout"


@dataclass(frozen=True)
class SourceImage:
    """A user-supplied still image.

    Attributes:
        mime_type: MIME type sent alongside the encoded bytes.
        data: Raw bytes, when the image is already in memory.
        path: File to read the bytes from, when ``data`` is not given.
    """
    mime_type: str
    data: bytes | None = None
    path: Path | None = None

    @property
    def is_empty(self) -> bool:
        if self.data is not None:
            return len(self.data) == 0
        return self.path is None


@dataclass(frozen=True)
class GenerationRequest:
    """Everything needed to start one generation job."""
    source_image: SourceImage | None
    prompt: str
    aspect_ratio: AspectRatio = AspectRatio.LANDSCAPE

    @property
    def is_valid(self) -> bool:
        return (
            self.source_image is not None
            and not self.source_image.is_empty
            and bool(self.prompt.strip())
        )


@dataclass(frozen=True)
class ManagedResourceHandle:
    """A local, explicitly released reference to decoded binary data.

    Attributes:
        handle_id: Opaque identifier (``blob:<uuid>``) used for rendering.
        slot: The slot this handle lives in.
        path: Temporary file holding the bytes until release.
        mime_type: MIME type of the stored bytes.
        size: Number of bytes stored.
    """
    handle_id: str
    slot: Slot
    path: Path
    mime_type: str
    size: int

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()


# ----------------------------------------------------------------------
# Orchestration states
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingApiKey:
    pass


@dataclass(frozen=True)
class Submitting:
    pass


@dataclass(frozen=True)
class Polling:
    job: GenerationJob


@dataclass(frozen=True)
class Fetching:
    job: GenerationJob


@dataclass(frozen=True)
class Ready:
    handle: ManagedResourceHandle


@dataclass(frozen=True)
class Failed:
    kind: ErrorKind
    message: str


OrchestrationState = Union[Idle, AwaitingApiKey, Submitting, Polling, Fetching, Ready, Failed]

BUSY_STATES = (Submitting, Polling, Fetching)
