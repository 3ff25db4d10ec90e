"""Deduplicating random picker over a time-boxed pool of GIF URLs.

The pool is fetched from the asset-search provider (Giphy), shuffled, and
kept for ``pool_ttl_seconds``. Picks avoid repeats until every entry has
been served, then the served set resets.

Dedup is approximate: each pick makes at most ``dedup_draw_attempts``
random draws looking for an unserved entry and then accepts a repeat. This
bounds pick latency when most of the pool has been served; a rare repeat
before exhaustion is expected.

Concurrency: pool state is guarded by an ``asyncio.Lock`` that is never held
across the search call. Callers that find the pool stale share one in-flight
refresh task, so concurrent refreshes cannot install competing pools.
"""

from __future__ import annotations

import asyncio
import random
import time
from contextlib import suppress
from typing import TYPE_CHECKING

import structlog

from pitchparty.errors import PitchPartyError
from pitchparty.retry import retry_with_backoff

if TYPE_CHECKING:
    from collections.abc import Callable

    from pitchparty.config import GiphySettings, RetrySettings
    from pitchparty.protocols import AssetSearchProtocol

log = structlog.get_logger()


class GifSelector:
    """Implements GifSelectorProtocol on top of an AssetSearchProtocol."""

    def __init__(
        self,
        search: AssetSearchProtocol,
        settings: GiphySettings,
        retry: RetrySettings,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._search = search
        self._settings = settings
        self._retry = retry
        self._rng = rng or random.Random()
        self._clock = clock

        self._lock = asyncio.Lock()
        self._pool: list[str] = []
        self._served: set[str] = set()
        self._expires_at = 0.0
        self._refresh_task: asyncio.Task[bool] | None = None

    @property
    def placeholder(self) -> str:
        return self._settings.placeholder_url

    async def pick(self, cancel: asyncio.Event | None = None) -> str:
        """Return one GIF URL. Falls back to the placeholder, never raises."""
        if not self._search.configured:
            return self.placeholder

        async with self._lock:
            if self._pool and self._clock() < self._expires_at:
                return self._pick_locked()

            if self._refresh_task is None or self._refresh_task.done():
                self._refresh_task = asyncio.create_task(self._refresh())
            refresh = self._refresh_task

        if not await self._await_refresh(refresh, cancel):
            return self.placeholder

        async with self._lock:
            if not self._pool:
                return self.placeholder
            return self._pick_locked()

    async def aclose(self) -> None:
        """Cancel an in-flight refresh. Called once at shutdown."""
        task = self._refresh_task
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _pick_locked(self) -> str:
        """Draw from the pool. Caller must hold ``self._lock``."""
        if len(self._served) >= len(self._pool):
            log.info("gif_pool_exhausted", pool_size=len(self._pool))
            self._served.clear()

        for _ in range(self._settings.dedup_draw_attempts):
            candidate = self._rng.choice(self._pool)
            if candidate not in self._served:
                self._served.add(candidate)
                return candidate

        candidate = self._rng.choice(self._pool)
        self._served.add(candidate)
        log.debug("gif_pick_repeat_accepted", pool_size=len(self._pool))
        return candidate

    async def _await_refresh(
        self, refresh: asyncio.Task[bool], cancel: asyncio.Event | None
    ) -> bool:
        """Wait for the shared refresh without cancelling it for other waiters.

        Returns False if ``cancel`` fired first or the refresh itself was
        cancelled (``aclose`` at shutdown).
        """
        waiters: set[asyncio.Future] = {refresh}
        cancel_wait = None
        if cancel is not None:
            cancel_wait = asyncio.create_task(cancel.wait())
            waiters.add(cancel_wait)
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if cancel_wait is not None:
                cancel_wait.cancel()

        if not refresh.done():
            log.info("gif_pool_refresh_abandoned", reason="cancelled")
            return False
        if refresh.cancelled():
            log.info("gif_pool_refresh_abandoned", reason="refresh_cancelled")
            return False
        return refresh.result()

    async def _refresh(self) -> bool:
        """Fetch and install a fresh pool. Returns False on failure."""
        query = self._settings.query
        limit = self._settings.limit
        try:
            urls = await retry_with_backoff(
                lambda: self._search.search(query, limit),
                max_retries=self._retry.max_retries,
                base_delay=self._retry.base_delay_seconds,
                operation_name="gif_search",
            )
        except PitchPartyError:
            log.warning("gif_pool_refresh_failed", query=query, exc_info=True)
            return False

        pool = list(dict.fromkeys(url for url in urls if url))
        if not pool:
            log.warning("gif_pool_refresh_empty", query=query)
            return False

        self._rng.shuffle(pool)
        async with self._lock:
            self._pool = pool
            self._served = set()
            self._expires_at = self._clock() + self._settings.pool_ttl_seconds

        log.info(
            "gif_pool_refreshed",
            pool_size=len(pool),
            ttl_seconds=self._settings.pool_ttl_seconds,
        )
        return True
