"""User-facing text shown while a generation runs or after it ends."""

from __future__ import annotations

from animator.models import AspectRatio

LOADING_MESSAGES = (
    "Warming up the creative engines...",
    "Gathering pixels and inspiration...",
    "This can take a few minutes, great art needs patience.",
    "Composing your video masterpiece...",
    "Finalizing the special effects...",
)

MESSAGE_INTERVAL = 3.0  # seconds between loading messages

VALIDATION_MESSAGE = "Please upload an image and provide a prompt."
AUTH_MESSAGE = "Your API key is invalid or not configured. Please select a valid key."
MISSING_RESULT_MESSAGE = "Video generation completed, but no video URI was found."


def message_at(tick: int) -> str:
    """Loading message for the ``tick``-th interval since loading began."""
    return LOADING_MESSAGES[tick % len(LOADING_MESSAGES)]


def failure_message(detail: str) -> str:
    return f"Failed to generate video: {detail}"


def framing_for(aspect_ratio: AspectRatio) -> str:
    return "landscape" if aspect_ratio == AspectRatio.LANDSCAPE else "portrait"
