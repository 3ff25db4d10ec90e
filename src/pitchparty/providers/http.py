"""Shared httpx plumbing for the remote content providers.

All provider I/O goes through a single ``httpx.AsyncClient`` created at
startup. The lifespan owns the client lifecycle; providers receive it via
constructor injection.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from pitchparty.errors import ErrorCode, PitchPartyError

log = structlog.get_logger()

# Client errors that will not go away by repeating the same request
_NON_RETRYABLE_STATUSES = frozenset({400, 401, 403, 404})


def build_http_client(timeout_seconds: float = 60.0) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_seconds),
        headers={"User-Agent": "pitchparty/1.0"},
        limits=httpx.Limits(
            max_connections=20,
            max_keepalive_connections=10,
        ),
    )


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    **kwargs: Any,
) -> dict:
    """Send one request and return the decoded JSON object body.

    Raises PitchPartyError on network errors, non-2xx responses and bodies
    that are not a JSON object. Everything except a definitive client error
    (400/401/403/404) is marked recoverable so the retrier tries again.
    """
    try:
        response = await client.request(method, url, **kwargs)
    except httpx.HTTPError as exc:
        raise PitchPartyError(
            code=ErrorCode.UPSTREAM_REQUEST_FAILED,
            message=f"Network error calling {provider}: {exc}",
            suggestion=f"{provider} may be temporarily unreachable.",
            recoverable=True,
        ) from exc

    if not response.is_success:
        status = response.status_code
        raise PitchPartyError(
            code=ErrorCode.UPSTREAM_REQUEST_FAILED,
            message=f"{provider} returned HTTP {status}",
            suggestion=(
                f"Check the {provider} API key and model configuration."
                if status in _NON_RETRYABLE_STATUSES
                else f"{provider} may be rate limiting or temporarily unavailable."
            ),
            recoverable=status not in _NON_RETRYABLE_STATUSES,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise PitchPartyError(
            code=ErrorCode.UPSTREAM_REQUEST_FAILED,
            message=f"{provider} returned a body that is not valid JSON",
            suggestion=f"{provider} may be returning an error page; try again later.",
            recoverable=True,
        ) from exc

    if not isinstance(data, dict):
        raise PitchPartyError(
            code=ErrorCode.UPSTREAM_REQUEST_FAILED,
            message=f"{provider} returned JSON of type {type(data).__name__}, expected an object",
            suggestion=f"{provider} may have changed its response format.",
            recoverable=True,
        )

    log.debug("provider_request_complete", provider=provider, status_code=response.status_code)
    return data
