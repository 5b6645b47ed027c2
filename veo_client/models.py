"""Data models for the Veo generation API client."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationJob:
    """A long-running Veo generation operation.

    Attributes:
        name: Opaque operation name returned by the service, used for polling.
        done: Whether the operation has reached a terminal state.
        result_ref: URI of the generated video, once available.
    """
    name: str
    done: bool = False
    result_ref: str | None = None

    @property
    def has_result(self) -> bool:
        return self.done and bool(self.result_ref)
