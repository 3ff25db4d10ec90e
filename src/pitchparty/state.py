"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and stored on ``app.state.app_state``; every request handler and the
service functions receive it explicitly. Each component owns its own lock,
so no lock here spans more than one structure.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from pitchparty.config import Settings
    from pitchparty.participants import ParticipantQueue
    from pitchparty.preloader import Preloader
    from pitchparty.prefetch import PrefetchCache
    from pitchparty.protocols import ContentGeneratorProtocol
    from pitchparty.selector import GifSelector


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every request handler."""

    settings: Settings

    # Content pipeline
    prefetch_cache: PrefetchCache
    generator: ContentGeneratorProtocol
    preloader: Preloader

    # Game roster
    participants: ParticipantQueue

    # Owned resources, closed by the lifespan
    selector: GifSelector | None = None
    http_client: httpx.AsyncClient | None = None
