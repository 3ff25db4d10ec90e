"""Integration test fixtures.

Provides a fully wired AppState around the fake content generator and an
httpx client that drives the Starlette app in-process over ASGI.
"""

from __future__ import annotations

import httpx
import pytest

from pitchparty.participants import ParticipantQueue
from pitchparty.prefetch import PrefetchCache
from pitchparty.preloader import Preloader
from pitchparty.state import AppState
from pitchparty.web import create_app


@pytest.fixture()
async def app_state(settings, content_generator):
    cache = PrefetchCache(settings.cache.size)
    state = AppState(
        settings=settings,
        prefetch_cache=cache,
        generator=content_generator,
        preloader=Preloader(cache, content_generator, settings.cache),
        participants=ParticipantQueue(),
    )
    yield state
    await state.preloader.aclose()


@pytest.fixture()
async def client(app_state):
    app = create_app()
    app.state.app_state = app_state
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client
