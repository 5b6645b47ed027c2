"""API key presence tracking.

The "credential present" flag has a fixed lifecycle: it is probed once at
startup, set by an explicit user selection, and cleared only when the
orchestrator sees an authentication failure.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from animator.config import get_api_key

logger = logging.getLogger(__name__)


class ConfigCredentialSelector:
    """Credential collaborator backed by config/env with an interactive fallback.

    Args:
        config: Parsed config dict.
        prompt: Blocking callable that asks the user for a key. Without one,
            selection leaves the current key in place.
    """

    def __init__(self, config: dict, prompt: Callable[[], str] | None = None) -> None:
        self._api_key = get_api_key(config)
        self._prompt = prompt

    @property
    def api_key(self) -> str | None:
        return self._api_key

    async def has_credential(self) -> bool:
        return self._api_key is not None

    async def select_credential(self) -> None:
        if self._prompt is None:
            return
        key = await asyncio.to_thread(self._prompt)
        key = key.strip()
        if key:
            self._api_key = key


class CredentialGate:
    """Owner of the process-wide "credential present" flag.

    ``selector`` is optional; without one the gate assumes a key is present.
    """

    def __init__(self, selector=None) -> None:
        self._selector = selector
        self._present: bool | None = None

    @property
    def present(self) -> bool | None:
        """None until ``probe`` has run."""
        return self._present

    @property
    def credential(self) -> str | None:
        return getattr(self._selector, "api_key", None)

    async def probe(self) -> bool:
        if self._selector is None or not hasattr(self._selector, "has_credential"):
            self._present = True
            return True
        try:
            self._present = bool(await self._selector.has_credential())
        except Exception:
            logger.warning("Could not verify API key status. Assuming key is present.", exc_info=True)
            self._present = True
        return self._present

    async def select(self) -> None:
        """Let the user pick a key; success is assumed once the dialog returns."""
        if self._selector is not None and hasattr(self._selector, "select_credential"):
            await self._selector.select_credential()
        self._present = True

    def invalidate(self) -> None:
        if self._present is not False:
            logger.warning("API key rejected by the service; re-selection required")
        self._present = False
