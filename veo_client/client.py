"""Async HTTP client for the Google Generative Language API (Veo models).

Covers the three calls an image-to-video job needs: submitting the
long-running operation, polling it, and fetching the generated video.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from veo_client.models import GenerationJob

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
_DEFAULT_MODEL = "veo-3.1-fast-generate-preview"
_DEFAULT_TIMEOUT = 60.0
_DOWNLOAD_TIMEOUT = 300.0

# Google reports an unusable key/project as a NOT_FOUND on the model resource.
_AUTH_ERROR_STATUS = "NOT_FOUND"
_AUTH_ERROR_TEXT = "Requested entity was not found"


class VeoApiError(Exception):
    """Raised when the Veo API returns an error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: Any = None,
        status: str | None = None,
    ):
        self.status_code = status_code
        self.body = body
        self.status = status
        super().__init__(message)


class AssetFetchError(VeoApiError):
    """Raised when the generated video cannot be downloaded."""


class VeoClient:
    """Async client for Veo image-to-video generation.

    Usage::

        async with VeoClient(api_key="...") as client:
            job = await client.submit(prompt="A gentle breeze", image_base64=b64,
                                      mime_type="image/jpeg", aspect_ratio="16:9")
            while not job.done:
                await asyncio.sleep(10)
                job = await client.poll(job)
            video = await client.fetch_asset(job.result_ref, client.api_key)
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = _DEFAULT_BASE_URL,
        model: str = _DEFAULT_MODEL,
        resolution: str = "720p",
        number_of_videos: int = 1,
        timeout: float = _DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.resolution = resolution
        self.number_of_videos = number_of_videos
        self._transport = transport
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(timeout, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> VeoClient:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        params = kwargs.pop("params", {})
        if self.api_key:
            params["key"] = self.api_key
        logger.debug("%s %s%s", method, self.base_url, url)
        try:
            response = await self._client.request(method, url, params=params, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            message, status = _parse_error_body(exc.response)
            raise VeoApiError(
                f"HTTP {exc.response.status_code}: {message}",
                status_code=exc.response.status_code,
                body=exc.response.text,
                status=status,
            ) from exc
        except httpx.TimeoutException as exc:
            raise VeoApiError(f"Request timeout: {exc}") from exc
        except httpx.TransportError as exc:
            raise VeoApiError(f"Connection failed: {exc}") from exc

    def _parse_job(self, data: dict) -> GenerationJob:
        name = data.get("name")
        if not name:
            raise VeoApiError(f"Could not extract operation name from response: {data}", body=data)

        done = bool(data.get("done", False))
        err = data.get("error")
        if done and isinstance(err, dict):
            raise VeoApiError(
                err.get("message", "Video generation failed"),
                status_code=err.get("code"),
                body=data,
                status=err.get("status"),
            )

        return GenerationJob(name=name, done=done, result_ref=_extract_video_uri(data.get("response")))

    # ------------------------------------------------------------------
    # Public API — error classification
    # ------------------------------------------------------------------

    def is_auth_error(self, exc: BaseException) -> bool:
        """Whether an error means the API key or its project is unusable."""
        if isinstance(exc, AssetFetchError) or not isinstance(exc, VeoApiError):
            return False
        if exc.status == _AUTH_ERROR_STATUS:
            return True
        return _AUTH_ERROR_TEXT in str(exc)

    # ------------------------------------------------------------------
    # Public API — generation jobs
    # ------------------------------------------------------------------

    async def submit(
        self,
        prompt: str,
        image_base64: str,
        mime_type: str,
        aspect_ratio: str = "16:9",
    ) -> GenerationJob:
        """Start an image-to-video operation.

        Args:
            prompt: Motion description.
            image_base64: Base64 image bytes without a data-URI prefix.
            mime_type: MIME type of the source image.
            aspect_ratio: "16:9" or "9:16".

        Returns:
            The operation, usually not yet done.
        """
        body: dict[str, Any] = {
            "instances": [
                {
                    "prompt": prompt,
                    "image": {
                        "bytesBase64Encoded": image_base64,
                        "mimeType": mime_type,
                    },
                }
            ],
            "parameters": {
                "aspectRatio": aspect_ratio,
                "resolution": self.resolution,
                "sampleCount": self.number_of_videos,
            },
        }

        logger.info("Submitting video job: model=%s, prompt=%r, aspect=%s", self.model, prompt[:80], aspect_ratio)
        response = await self._request("POST", f"/models/{self.model}:predictLongRunning", json=body)
        job = self._parse_job(response.json())
        logger.info("Video job submitted: %s", job.name)
        return job

    async def poll(self, job: GenerationJob) -> GenerationJob:
        """Fetch the current state of an operation."""
        response = await self._request("GET", f"/{job.name}")
        refreshed = self._parse_job(response.json())
        logger.debug("Job %s: done=%s", refreshed.name, refreshed.done)
        return refreshed

    async def fetch_asset(self, result_ref: str, credential: str | None = None) -> bytes:
        """Download the generated video into memory.

        The credential is appended to the asset URL as the ``key`` parameter.
        """
        credential = credential or self.api_key
        params = {"key": credential} if credential else None

        logger.info("Fetching generated video %s", result_ref)
        try:
            async with httpx.AsyncClient(timeout=_DOWNLOAD_TIMEOUT, transport=self._transport) as dl_client:
                async with dl_client.stream("GET", result_ref, params=params, follow_redirects=True) as response:
                    if not response.is_success:
                        raise AssetFetchError(
                            f"Failed to fetch video: {response.reason_phrase}",
                            status_code=response.status_code,
                        )
                    data = bytearray()
                    async for chunk in response.aiter_bytes(chunk_size=8192):
                        data.extend(chunk)
        except httpx.HTTPError as exc:
            raise AssetFetchError(f"Failed to fetch video: {exc}") from exc

        logger.info("Fetched video (%.1f KB)", len(data) / 1024)
        return bytes(data)


def _parse_error_body(response: httpx.Response) -> tuple[str, str | None]:
    try:
        data = response.json()
    except ValueError:
        return response.text, None
    err = data.get("error") if isinstance(data, dict) else None
    if isinstance(err, dict):
        return err.get("message", response.text), err.get("status")
    return response.text, None


def _extract_video_uri(response: Any) -> str | None:
    if not isinstance(response, dict):
        return None
    # REST responses nest samples under generateVideoResponse; SDK-shaped ones use generatedVideos.
    inner = response.get("generateVideoResponse", response)
    samples = inner.get("generatedSamples") or inner.get("generatedVideos") or []
    if not samples:
        return None
    video = samples[0].get("video") or {}
    return video.get("uri") or None
