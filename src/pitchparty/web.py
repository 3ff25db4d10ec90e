"""Starlette routes: roster pages, game page, and the game-data JSON API.

Handlers read AppState from ``request.app.state.app_state`` and delegate to
service.py / participants.py. PitchPartyError from content generation is
turned into a 503 with the structured error envelope; anything else is
logged and re-raised.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Mount, Route
from starlette.staticfiles import StaticFiles
from starlette.templating import Jinja2Templates

from pitchparty import service
from pitchparty.errors import ErrorCode, PitchPartyError

if TYPE_CHECKING:
    from starlette.requests import Request
    from starlette.types import Lifespan

    from pitchparty.state import AppState

log = structlog.get_logger()

_PACKAGE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(_PACKAGE_DIR / "templates"))


def _state(request: Request) -> AppState:
    return request.app.state.app_state


def _redirect(path: str) -> RedirectResponse:
    return RedirectResponse(path, status_code=303)


def _error_response(exc: PitchPartyError, route: str) -> JSONResponse:
    log.warning(
        "request_error",
        route=route,
        code=exc.code,
        message=exc.message,
        recoverable=exc.recoverable,
    )
    return JSONResponse(exc.to_dict(), status_code=503)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


async def index(request: Request) -> Response:
    participants = _state(request).participants
    return templates.TemplateResponse(
        request,
        "index.html",
        {"participants": participants.snapshot(), "next": participants.next()},
    )


async def admin(request: Request) -> Response:
    state = _state(request)
    return templates.TemplateResponse(
        request,
        "admin.html",
        {
            "participants": state.participants.snapshot(),
            "status": service.cache_status(state),
        },
    )


async def game(request: Request) -> Response:
    return templates.TemplateResponse(
        request,
        "game.html",
        {"participant_name": request.path_params["name"]},
    )


# ---------------------------------------------------------------------------
# Roster forms
# ---------------------------------------------------------------------------


async def set_participants(request: Request) -> Response:
    form = await request.form()
    names = _state(request).participants.replace(str(form.get("names", "")))
    log.info("participants_replaced", count=len(names))
    return _redirect("/")


async def remove_participant(request: Request) -> Response:
    form = await request.form()
    name = str(form.get("name", "")).strip()
    if not name:
        error = PitchPartyError(
            code=ErrorCode.INVALID_INPUT,
            message="Participant name cannot be empty",
            suggestion="Submit the form with the name of a participant on the roster.",
        )
        return JSONResponse(error.to_dict(), status_code=400)

    _state(request).participants.remove(name)
    return _redirect("/admin")


async def next_participant(request: Request) -> Response:
    _state(request).participants.advance()
    return _redirect("/")


# ---------------------------------------------------------------------------
# Cache administration
# ---------------------------------------------------------------------------


async def preload_cache(request: Request) -> Response:
    try:
        await service.manual_fill(_state(request))
    except PitchPartyError as exc:
        return _error_response(exc, route="preload_cache")
    return _redirect("/admin")


async def start_preloader(request: Request) -> Response:
    service.start_preloader(_state(request))
    return _redirect("/admin")


async def stop_preloader(request: Request) -> Response:
    service.stop_preloader(_state(request))
    return _redirect("/admin")


# ---------------------------------------------------------------------------
# JSON API
# ---------------------------------------------------------------------------


async def game_data(request: Request) -> Response:
    participant_name = request.path_params["name"]
    try:
        bundle = await service.pop_or_generate(_state(request))
    except PitchPartyError as exc:
        return _error_response(exc, route="game_data")
    except Exception:
        log.error("request_unexpected_error", route="game_data", exc_info=True)
        raise

    payload = {"participantName": participant_name}
    payload.update(bundle.model_dump(mode="json", by_alias=True, exclude={"created_at"}))
    return JSONResponse(payload)


async def cache_status(request: Request) -> Response:
    return JSONResponse(service.cache_status(_state(request)).model_dump(mode="json"))


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(lifespan: Lifespan | None = None) -> Starlette:
    """Build the Starlette app. ``lifespan`` must set ``app.state.app_state``."""
    routes = [
        Route("/", index, methods=["GET"]),
        Route("/admin", admin, methods=["GET"]),
        Route("/participants", set_participants, methods=["POST"]),
        Route("/remove-participant", remove_participant, methods=["POST"]),
        Route("/next-participant", next_participant, methods=["POST"]),
        Route("/preload-cache", preload_cache, methods=["POST"]),
        Route("/preloader/start", start_preloader, methods=["POST"]),
        Route("/preloader/stop", stop_preloader, methods=["POST"]),
        Route("/game/{name}", game, methods=["GET"]),
        Route("/api/game-data/{name}", game_data, methods=["GET"]),
        Route("/api/cache-status", cache_status, methods=["GET"]),
        Mount("/static", app=StaticFiles(directory=str(_PACKAGE_DIR / "static")), name="static"),
    ]
    return Starlette(routes=routes, lifespan=lifespan)
