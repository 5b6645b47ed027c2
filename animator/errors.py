"""Exceptions raised by the local side of the generation workflow."""

from __future__ import annotations


class EncodingError(Exception):
    """Raised when a source image cannot be read or encoded for transport."""


class GenerationInProgressError(RuntimeError):
    """Raised when a new generation is started while another is in flight."""
