"""Background task that keeps the prefetch cache topped up.

Lifecycle is a two-state machine, Stopped → Running → Stopped, guarded by a
lock so at most one loop runs per cache. Each run owns a fresh
``asyncio.Event`` stop token; the token is also handed to the content
generator so a pending retry wait aborts as soon as ``stop()`` is called.

Loop phases:
  1. Initial fill: generate until occupancy reaches the target, pausing
     ``failure_cooldown_seconds`` after each failure. Marks the cache loaded.
  2. Maintenance: every ``maintenance_interval_seconds``, generate exactly
     one bundle if occupancy is below target. Failures wait for the next tick.
"""

from __future__ import annotations

import asyncio
import threading
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from pitchparty.config import CacheSettings
    from pitchparty.prefetch import PrefetchCache
    from pitchparty.protocols import ContentGeneratorProtocol

log = structlog.get_logger()


async def _wait_for_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Sleep up to ``timeout`` seconds. Returns True if ``stop`` fired."""
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout)
    except TimeoutError:
        return False
    return True


class Preloader:
    """Start/stop-able refill loop for one PrefetchCache."""

    def __init__(
        self,
        cache: PrefetchCache,
        generator: ContentGeneratorProtocol,
        settings: CacheSettings,
    ) -> None:
        self._cache = cache
        self._generator = generator
        self._settings = settings

        self._lock = threading.Lock()
        self._running = False
        self._stop: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        # Every loop task not yet finished, including stopped ones still draining
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def target_size(self) -> int:
        """Occupancy both phases fill to. Never below one bundle."""
        return max(1, int(self._cache.max_size * self._settings.fill_fraction))

    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def start(self) -> bool:
        """Spawn the loop on the running event loop. No-op if already running.

        If a stopped loop is still finishing an in-flight generation, the new
        loop waits for it to exit first, so at most one loop ever generates.
        Returns True if a new loop was started.
        """
        with self._lock:
            if self._running:
                return False
            stop = asyncio.Event()
            previous = self._task if self._task is not None and not self._task.done() else None
            task = asyncio.create_task(self._run(stop, previous), name="content-preloader")
            self._stop = stop
            self._task = task
            self._tasks.add(task)
            self._running = True

        task.add_done_callback(self._on_task_done)
        log.info("preloader_started", target=self.target_size, max_size=self._cache.max_size)
        return True

    def stop(self) -> bool:
        """Signal the loop to exit at its next checkpoint. No-op if stopped.

        Does not wait for an in-flight generation. Returns True if a running
        loop was signalled.
        """
        with self._lock:
            if not self._running or self._stop is None:
                return False
            self._stop.set()
            self._running = False

        log.info("preloader_stop_requested")
        return True

    async def aclose(self) -> None:
        """Stop and cancel every loop, waiting for them to finish. Used at shutdown."""
        self.stop()
        with self._lock:
            tasks = [task for task in self._tasks if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def run_once(self, stop: asyncio.Event | None = None) -> bool:
        """Run one maintenance tick. Returns True if a bundle was pushed."""
        target = self.target_size
        size = self._cache.size()
        if size >= target:
            log.debug("preload_cache_full", cache_size=size, target=target)
            return False

        log.info("preload_cache_low", cache_size=size, target=target)
        try:
            bundle = await self._generator.generate(stop)
        except Exception:
            log.warning("preload_maintenance_failed", exc_info=True)
            return False

        self._cache.push(bundle)
        log.info("preload_bundle_added", cache_size=self._cache.size(), target=target)
        return True

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run(self, stop: asyncio.Event, previous: asyncio.Task[None] | None = None) -> None:
        if previous is not None:
            log.info("preloader_waiting_for_previous_loop")
            await asyncio.wait({previous})

        if not await self._initial_fill(stop):
            log.info("preloader_stopped", phase="initial_fill")
            return

        self._cache.mark_loaded()
        log.info("preload_initial_complete", cache_size=self._cache.size())

        interval = self._settings.maintenance_interval_seconds
        while not await _wait_for_stop(stop, interval):
            await self.run_once(stop)

        log.info("preloader_stopped", phase="maintenance")

    async def _initial_fill(self, stop: asyncio.Event) -> bool:
        """Fill to target. Returns False if stopped before reaching it."""
        target = self.target_size
        log.info("preload_initial_started", target=target)

        while self._cache.size() < target:
            if stop.is_set():
                return False

            try:
                bundle = await self._generator.generate(stop)
            except Exception:
                log.warning(
                    "preload_initial_failed",
                    cooldown_seconds=self._settings.failure_cooldown_seconds,
                    exc_info=True,
                )
                if await _wait_for_stop(stop, self._settings.failure_cooldown_seconds):
                    return False
                continue

            self._cache.push(bundle)
            log.info("preload_initial_progress", cache_size=self._cache.size(), target=target)

        return True

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        with self._lock:
            self._tasks.discard(task)
            if self._task is task:
                self._running = False

        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("preloader_crashed", exc_info=exc)
