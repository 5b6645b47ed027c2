"""Veo API client — async HTTP client for image-to-video generation."""

from veo_client.client import VeoClient, VeoApiError, AssetFetchError
from veo_client.models import GenerationJob

__all__ = [
    "VeoClient",
    "VeoApiError",
    "AssetFetchError",
    "GenerationJob",
]
