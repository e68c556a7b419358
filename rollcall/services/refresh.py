"""
rollcall.services.refresh — Coalescing panel refresh worker
============================================================

Producers (the periodic loop, button presses, ``/setup refresh``) call
:meth:`PanelRefresher.request`.  A single background task waits for a
request, sleeps the debounce delay so bursts collapse into one render, and
then renders.  Requests arriving during a render schedule exactly one more.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class PanelRefresher:
    """Single-consumer refresh queue for the panel message."""

    def __init__(self, render: Callable[[], Awaitable[object]], debounce: float = 1.2) -> None:
        self._render = render
        self.debounce = debounce
        self._pending = asyncio.Event()
        self._task: asyncio.Task | None = None
        self.renders = 0

    @property
    def pending(self) -> bool:
        return self._pending.is_set()

    def request(self) -> None:
        """Ask for a refresh.  Cheap; safe to call from any handler."""
        self._pending.set()

    async def run_once(self) -> None:
        """Wait for a request, debounce, render once."""
        await self._pending.wait()
        if self.debounce > 0:
            await asyncio.sleep(self.debounce)
        self._pending.clear()
        try:
            await self._render()
            self.renders += 1
        except Exception:
            logger.exception("Panel refresh failed")

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """Start the background consumer task."""
        if self._task is not None:
            return

        async def _refresh_loop() -> None:
            while True:
                await self.run_once()

        self._task = loop.create_task(_refresh_loop(), name="panel-refresh")

    def stop(self) -> None:
        """Cancel the consumer task."""
        if self._task:
            self._task.cancel()
            self._task = None
