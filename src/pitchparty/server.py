"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the Starlette lifespan context manager
- Start and stop the background preloader
- Run uvicorn
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
import uvicorn

from pitchparty import __version__
from pitchparty.config import Settings
from pitchparty.generator import ContentGenerator
from pitchparty.participants import ParticipantQueue
from pitchparty.prefetch import PrefetchCache
from pitchparty.preloader import Preloader
from pitchparty.providers import GeminiClient, GiphyClient, build_http_client
from pitchparty.selector import GifSelector
from pitchparty.service import start_preloader
from pitchparty.state import AppState
from pitchparty.web import create_app

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx
    from starlette.applications import Starlette

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


def build_state(settings: Settings, http_client: httpx.AsyncClient) -> AppState:
    """Wire providers, selector, generator, cache and preloader together."""
    gemini = GeminiClient(http_client, settings.gemini)
    giphy = GiphyClient(http_client, settings.giphy)
    selector = GifSelector(giphy, settings.giphy, settings.retry)
    generator = ContentGenerator(
        gemini,
        gemini,
        selector,
        settings.retry,
        image_prompt_max_tokens=settings.gemini.image_prompt_max_tokens,
        placeholder_gif=settings.giphy.placeholder_url,
    )
    cache = PrefetchCache(settings.cache.size)
    return AppState(
        settings=settings,
        prefetch_cache=cache,
        generator=generator,
        preloader=Preloader(cache, generator, settings.cache),
        participants=ParticipantQueue(),
        selector=selector,
        http_client=http_client,
    )


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info("server_starting", version=__version__)

    if not settings.giphy.api_key:
        log.warning("giphy_api_key_missing", fallback=settings.giphy.placeholder_url)

    http_client = build_http_client(settings.gemini.timeout_seconds)
    state = build_state(settings, http_client)
    app.state.app_state = state

    log.info(
        "content_cache_configured",
        size=settings.cache.size,
        preload=settings.cache.preload_enabled,
    )
    if settings.cache.preload_enabled:
        start_preloader(state)
    else:
        log.info("preloader_disabled")

    log.info("server_started", version=__version__, port=settings.server.port)

    try:
        yield
    finally:
        await state.preloader.aclose()
        if state.selector is not None:
            await state.selector.aclose()
        await http_client.aclose()
        log.info("server_stopping")


app = create_app(lifespan=lifespan)


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)

    if not settings.gemini.api_key:
        log.error(
            "server_config_error",
            reason="gemini_api_key_missing",
            hint="Set PITCHPARTY__GEMINI__API_KEY or gemini.api_key in pitchparty.yaml.",
        )
        sys.exit(1)

    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
