"""Image-to-video generation state machine.

Drives one job at a time through submit -> poll -> fetch, publishing every
state change to subscribers and keeping the preview/result resource slots
in step with the flow. Every failure ends in a ``Failed`` state; nothing
raised by the encoder or the remote client escapes ``generate``.

Each flow is tagged with a sequence number. A flow that has been superseded
(by ``reset``, ``select_image`` or ``close``) finishes its pending await and
then drops whatever it received without touching state or resources.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from animator.credentials import CredentialGate
from animator.encoder import encode
from animator.errors import GenerationInProgressError
from animator.messages import AUTH_MESSAGE, MISSING_RESULT_MESSAGE, VALIDATION_MESSAGE, failure_message
from animator.models import (
    BUSY_STATES,
    AwaitingApiKey,
    ErrorKind,
    Failed,
    Fetching,
    GenerationRequest,
    Idle,
    OrchestrationState,
    Polling,
    Ready,
    SourceImage,
    Slot,
    Submitting,
)
from animator.resources import ResourceLifecycleManager
from veo_client.models import GenerationJob

logger = logging.getLogger(__name__)

_VIDEO_MIME_TYPE = "video/mp4"

StateListener = Callable[[OrchestrationState], Any]


class GenerationOrchestrator:
    """Runs generation flows against a Veo-compatible client.

    Args:
        client: Object with ``submit``, ``poll`` and ``fetch_asset`` coroutines.
            An optional ``is_auth_error(exc)`` predicate marks credential failures.
        resources: Manager owning the preview and result handles.
        credentials: Gate owning the credential-present flag.
        poll_interval: Seconds to wait before each status check.
        max_wait: Give up polling after this many seconds; None polls until done.
        sleep: Awaitable delay, replaceable in tests.
    """

    def __init__(
        self,
        client: Any,
        resources: ResourceLifecycleManager,
        credentials: CredentialGate | None = None,
        poll_interval: float = 10.0,
        max_wait: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._resources = resources
        self._credentials = credentials or CredentialGate()
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._sleep = sleep
        self._state: OrchestrationState = Idle()
        self._sequence = 0
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> OrchestrationState:
        return self._state

    @property
    def is_busy(self) -> bool:
        return isinstance(self._state, BUSY_STATES)

    @property
    def credentials(self) -> CredentialGate:
        return self._credentials

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transition(self, state: OrchestrationState, seq: int) -> bool:
        """Apply ``state`` if ``seq`` is still the current flow."""
        if seq != self._sequence:
            logger.debug("Dropping %s from superseded flow %d", type(state).__name__, seq)
            return False
        self._state = state
        logger.debug("State -> %s", state)
        for listener in self._listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("State listener failed on %s", type(state).__name__)
        return True

    def _supersede(self) -> int:
        self._sequence += 1
        return self._sequence

    def _resting_state(self) -> OrchestrationState:
        return AwaitingApiKey() if self._credentials.present is False else Idle()

    def _fail(self, stage: ErrorKind, exc: Exception, seq: int) -> None:
        if seq != self._sequence:
            logger.info("Ignoring %s error from superseded flow: %s", stage.value, exc)
            return
        logger.error("Video generation failed during %s: %s", stage.value, exc)

        is_auth_error = getattr(self._client, "is_auth_error", None)
        if is_auth_error is not None and is_auth_error(exc):
            self._credentials.invalidate()
            self._transition(Failed(ErrorKind.AUTH, AUTH_MESSAGE), seq)
        else:
            self._transition(Failed(stage, failure_message(str(exc))), seq)

    async def _poll_until_done(self, job: GenerationJob, seq: int) -> GenerationJob | None:
        """Poll until ``job`` is done; None when superseded or out of time."""
        elapsed = 0.0
        while not job.done:
            if self.max_wait is not None and elapsed >= self.max_wait:
                self._transition(
                    Failed(ErrorKind.TIMEOUT, failure_message(f"Job {job.name} did not complete within {self.max_wait:.0f}s")),
                    seq,
                )
                return None
            await self._sleep(self.poll_interval)
            elapsed += self.poll_interval
            if seq != self._sequence:
                return None

            job = await self._client.poll(job)
            logger.info("Job %s: done=%s (%.0fs elapsed)", job.name, job.done, elapsed)
            if not job.done and not self._transition(Polling(job), seq):
                return None
        return job

    async def _run(self, request: GenerationRequest, seq: int) -> None:
        stage = ErrorKind.ENCODING
        try:
            image_base64 = await encode(request.source_image)
            if seq != self._sequence:
                return
            if not image_base64:
                self._transition(Failed(ErrorKind.VALIDATION, VALIDATION_MESSAGE), seq)
                return

            stage = ErrorKind.SUBMISSION
            job = await self._client.submit(
                prompt=request.prompt,
                image_base64=image_base64,
                mime_type=request.source_image.mime_type,
                aspect_ratio=request.aspect_ratio.value,
            )
            if not self._transition(Polling(job), seq):
                return

            stage = ErrorKind.POLLING
            job = await self._poll_until_done(job, seq)
            if job is None:
                return
            if not job.result_ref:
                self._transition(Failed(ErrorKind.MISSING_RESULT, failure_message(MISSING_RESULT_MESSAGE)), seq)
                return
            if not self._transition(Fetching(job), seq):
                return

            stage = ErrorKind.ASSET_FETCH
            data = await self._client.fetch_asset(job.result_ref, self._credentials.credential)
            if seq != self._sequence:
                logger.info("Discarding video for superseded job %s", job.name)
                return
            self._resources.register(Slot.RESULT, data, _VIDEO_MIME_TYPE)
            self._transition(Ready(self._resources.get(Slot.RESULT)), seq)
        except Exception as exc:
            self._fail(stage, exc, seq)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def start(self) -> OrchestrationState:
        """Probe for a credential; call once before the first generation."""
        seq = self._sequence
        present = await self._credentials.probe()
        if not present:
            self._transition(AwaitingApiKey(), seq)
        return self._state

    async def select_credential(self) -> OrchestrationState:
        """Let the user choose a key and leave the awaiting state."""
        seq = self._sequence
        await self._credentials.select()
        if isinstance(self._state, AwaitingApiKey):
            self._transition(Idle(), seq)
        return self._state

    async def select_image(self, source: SourceImage) -> str | None:
        """Register ``source`` as the preview and drop any previous result.

        Returns the preview handle id, or None when the image cannot be read.
        """
        if self.is_busy:
            raise GenerationInProgressError("Cannot change the image while a video is being generated")
        seq = self._supersede()
        self._resources.release(Slot.RESULT)
        if source.is_empty:
            self._resources.release(Slot.PREVIEW)
            self._transition(Failed(ErrorKind.VALIDATION, VALIDATION_MESSAGE), seq)
            return None
        try:
            data = source.data if source.data is not None else await asyncio.to_thread(source.path.read_bytes)
        except OSError as exc:
            self._resources.release(Slot.PREVIEW)
            self._transition(Failed(ErrorKind.ENCODING, failure_message(f"Could not read image: {exc}")), seq)
            return None
        if not data:
            self._resources.release(Slot.PREVIEW)
            self._transition(Failed(ErrorKind.VALIDATION, VALIDATION_MESSAGE), seq)
            return None
        handle_id = self._resources.register(Slot.PREVIEW, data, source.mime_type)
        if not isinstance(self._state, (Idle, AwaitingApiKey)):
            self._transition(self._resting_state(), seq)
        return handle_id

    async def generate(self, request: GenerationRequest) -> OrchestrationState:
        """Run one full generation flow and return the state it ended in.

        Raises:
            GenerationInProgressError: If another flow is still running.
        """
        if self.is_busy:
            raise GenerationInProgressError("A video is already being generated")
        seq = self._supersede()

        if self._credentials.present is False:
            self._transition(AwaitingApiKey(), seq)
            return self._state
        if not request.is_valid:
            self._transition(Failed(ErrorKind.VALIDATION, VALIDATION_MESSAGE), seq)
            return self._state

        self._resources.release(Slot.RESULT)
        self._transition(Submitting(), seq)
        await self._run(request, seq)
        return self._state

    def reset(self, clear_preview: bool = True) -> None:
        """Start over: supersede any flow and release the result (and preview)."""
        seq = self._supersede()
        self._resources.release(Slot.RESULT)
        if clear_preview:
            self._resources.release(Slot.PREVIEW)
        self._transition(self._resting_state(), seq)

    def close(self) -> None:
        """Tear down: supersede any flow and release every handle."""
        self._supersede()
        self._resources.close()
