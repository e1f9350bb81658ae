"""Autosave coordinator: decides when store changes reach the gateway.

States:
- clean: nothing changed since the last successful save
- dirty: at least one mutation is not persisted yet
- saving: a save is in flight (at most one at a time)

A save always sends the full store snapshot taken when it is dispatched.
Mutations made while a save is in flight bump the store revision; when that
save completes the coordinator goes back to dirty instead of clean, so the
next tick sends them. Failed saves leave the coordinator dirty and the timer
retries on its next tick. No backoff.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable

from folia.config import DEFAULT_AUTOSAVE_INTERVAL
from folia.models import Notice
from folia.store import LayoutStore

logger = logging.getLogger(__name__)

CLEAN = "clean"
DIRTY = "dirty"
SAVING = "saving"


class AutosaveCoordinator:
    def __init__(
        self,
        store: LayoutStore,
        gateway,
        user_id: str,
        interval: float = DEFAULT_AUTOSAVE_INTERVAL,
        on_notice: Callable[[Notice], None] | None = None,
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.user_id = user_id
        self.interval = interval
        self.on_notice = on_notice
        self.state = CLEAN
        self.saved_revision = store.revision
        self.last_error: str | None = None
        self._lock = asyncio.Lock()
        self._timer: asyncio.Task | None = None
        store.subscribe(self._on_mutation)

    def _on_mutation(self, revision: int) -> None:
        if self.state == CLEAN:
            self.state = DIRTY

    def mark_dirty(self) -> None:
        """Force the next tick to save, e.g. after a failed seed."""
        if self.state == CLEAN:
            self.state = DIRTY

    @property
    def saving(self) -> bool:
        return self._lock.locked()

    # ── Triggers ──

    async def tick(self) -> bool:
        """Timer callback: save if dirty and nothing is in flight.

        Returns True only when a save was performed and succeeded.
        """
        if self.state != DIRTY or self._lock.locked():
            return False
        async with self._lock:
            return await self._save()

    async def flush_now(self) -> bool:
        """Wait for an in-flight save, then save whatever is still pending.

        Returns True when nothing is left unsaved.
        """
        async with self._lock:
            if self.state != DIRTY:
                return True
            return await self._save()

    async def exit_edit_mode(self) -> bool:
        """Leaving edit mode saves immediately instead of waiting for the timer."""
        logger.debug("Edit mode closed for %s; flushing", self.user_id)
        return await self.flush_now()

    # ── Timer ──

    def start(self) -> None:
        """Start the fixed-interval timer on the running event loop."""
        if self._timer is None or self._timer.done():
            self._timer = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._timer
        self._timer = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.tick()

    # ── Save ──

    async def _save(self) -> bool:
        # caller holds self._lock
        payload = self.store.snapshot()
        revision = self.store.revision
        self.state = SAVING
        try:
            await self.gateway.save(self.user_id, payload)
        except Exception as e:
            self.state = DIRTY
            self.last_error = str(e)
            logger.warning("Layout save failed for %s: %s", self.user_id, e)
            self._notify(Notice("Could not save layout changes. Retrying shortly.", "error", "Dashboard"))
            return False

        self.saved_revision = revision
        self.last_error = None
        self.state = CLEAN if self.store.revision == revision else DIRTY
        logger.debug("Saved revision %d for %s (now %s)", revision, self.user_id, self.state)
        return True

    def _notify(self, notice: Notice) -> None:
        if self.on_notice is not None:
            self.on_notice(notice)
