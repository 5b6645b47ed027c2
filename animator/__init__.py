"""Image-to-video generation: orchestration of Veo jobs and their local resources."""

from animator.errors import EncodingError, GenerationInProgressError
from animator.models import AspectRatio, ErrorKind, GenerationRequest, SourceImage, Slot
from animator.orchestrator import GenerationOrchestrator
from animator.resources import ResourceLifecycleManager

__all__ = [
    "AspectRatio",
    "EncodingError",
    "ErrorKind",
    "GenerationInProgressError",
    "GenerationOrchestrator",
    "GenerationRequest",
    "ResourceLifecycleManager",
    "SourceImage",
    "Slot",
]
