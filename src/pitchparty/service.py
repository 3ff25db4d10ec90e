"""Content operations used by the HTTP layer.

Receives AppState and returns models. No Starlette imports; web.py
handles the HTTP wiring and error translation.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from pitchparty.models.bundle import CacheStatus

if TYPE_CHECKING:
    from pitchparty.models.bundle import Bundle
    from pitchparty.state import AppState

log = structlog.get_logger()


async def pop_or_generate(state: AppState) -> Bundle:
    """Serve a cached bundle, falling back to on-demand generation.

    If the cache is empty before the initial preload has finished, waits
    ``pop_wait_seconds`` once for the preloader to push something. Raises
    PitchPartyError only if the on-demand generation fails.
    """
    cache = state.prefetch_cache

    bundle = cache.pop()
    if bundle is None and not cache.is_loaded():
        wait_seconds = state.settings.cache.pop_wait_seconds
        log.info("content_cache_not_loaded", wait_seconds=wait_seconds)
        await asyncio.sleep(wait_seconds)
        bundle = cache.pop()

    if bundle is not None:
        log.info("content_served", source="cache", cache_size=cache.size())
        return bundle

    log.info("content_cache_empty_generating")
    bundle = await state.generator.generate()
    log.info("content_served", source="on_demand")
    return bundle


async def manual_fill(state: AppState) -> Bundle:
    """Generate one bundle and push it into the cache."""
    bundle = await state.generator.generate()
    state.prefetch_cache.push(bundle)
    log.info("manual_fill_complete", cache_size=state.prefetch_cache.size())
    return bundle


def cache_status(state: AppState) -> CacheStatus:
    cache = state.prefetch_cache
    return CacheStatus(
        size=cache.size(),
        capacity=cache.max_size,
        loaded=cache.is_loaded(),
        preloader_running=state.preloader.is_running(),
    )


def start_preloader(state: AppState) -> bool:
    return state.preloader.start()


def stop_preloader(state: AppState) -> bool:
    return state.preloader.stop()
