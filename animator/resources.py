"""Lifecycle management for local binary resource handles.

Each slot (preview image, generated video) holds at most one live handle.
A handle is backed by a temporary file that exists until the handle is
released, either because a newer handle replaced it or because the owning
scope closed the manager.
"""

from __future__ import annotations

import logging
import mimetypes
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any

from animator.models import ManagedResourceHandle, Slot

logger = logging.getLogger(__name__)


class ResourceLifecycleManager:
    """Owns every live ``ManagedResourceHandle``.

    Usage::

        with ResourceLifecycleManager() as resources:
            handle_id = resources.register(Slot.RESULT, video_bytes, "video/mp4")
            resources.export(Slot.RESULT, "out.mp4")
    """

    def __init__(self, directory: str | Path | None = None) -> None:
        self._directory = Path(directory) if directory else None
        self._handles: dict[Slot, ManagedResourceHandle] = {}

    def __enter__(self) -> ResourceLifecycleManager:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def register(self, slot: Slot, data: bytes, mime_type: str) -> str:
        """Store ``data`` under ``slot`` and return the new handle id.

        Any handle already in the slot is released first, so a failure while
        writing the new one leaves the slot empty rather than leaking.
        """
        self.release(slot)

        suffix = mimetypes.guess_extension(mime_type) or ".bin"
        fd, name = tempfile.mkstemp(prefix=f"{slot.value}-", suffix=suffix, dir=self._directory)
        path = Path(name)
        try:
            with open(fd, "wb") as f:
                f.write(data)
        except BaseException:
            path.unlink(missing_ok=True)
            raise

        handle = ManagedResourceHandle(
            handle_id=f"blob:{uuid.uuid4()}",
            slot=slot,
            path=path,
            mime_type=mime_type,
            size=len(data),
        )
        self._handles[slot] = handle
        logger.debug("Registered %s in %s slot (%.1f KB)", handle.handle_id, slot.value, len(data) / 1024)
        return handle.handle_id

    def get(self, slot: Slot) -> ManagedResourceHandle | None:
        return self._handles.get(slot)

    def release(self, slot: Slot) -> None:
        """Release the handle in ``slot``; a no-op when the slot is empty."""
        handle = self._handles.pop(slot, None)
        if handle is None:
            return
        handle.path.unlink(missing_ok=True)
        logger.debug("Released %s from %s slot", handle.handle_id, slot.value)

    def export(self, slot: Slot, destination: str | Path) -> Path:
        """Copy the live handle in ``slot`` to ``destination``."""
        handle = self._handles.get(slot)
        if handle is None:
            raise LookupError(f"No live resource in {slot.value} slot")
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(handle.path, dest)
        return dest

    def close(self) -> None:
        """Release every slot."""
        for slot in list(self._handles):
            self.release(slot)

    @property
    def live_count(self) -> int:
        return len(self._handles)
