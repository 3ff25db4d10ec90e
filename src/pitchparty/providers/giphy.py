"""Giphy search client used to fill the clapping-GIF pool."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pitchparty.errors import ErrorCode, PitchPartyError
from pitchparty.providers.http import request_json

if TYPE_CHECKING:
    import httpx

    from pitchparty.config import GiphySettings


def extract_gif_urls(data: dict) -> list[str]:
    """Pull ``data[].images.original.url`` out of a search response.

    Entries missing any part of that path are skipped.
    """
    items = data.get("data")
    if not isinstance(items, list):
        raise PitchPartyError(
            code=ErrorCode.ASSET_SEARCH_FAILED,
            message="Giphy response has no 'data' list",
            suggestion="Giphy may have changed its response format.",
            recoverable=True,
        )

    urls: list[str] = []
    for item in items:
        try:
            url = item["images"]["original"]["url"]
        except (KeyError, TypeError):
            continue
        if url:
            urls.append(url)
    return urls


class GiphyClient:
    """Implements AssetSearchProtocol. Unconfigured without an API key."""

    def __init__(self, client: httpx.AsyncClient, settings: GiphySettings) -> None:
        self._client = client
        self._settings = settings

    @property
    def configured(self) -> bool:
        return bool(self._settings.api_key)

    async def search(self, query: str, limit: int) -> list[str]:
        data = await request_json(
            self._client,
            "GET",
            self._settings.search_url,
            provider="Giphy",
            params={
                "api_key": self._settings.api_key,
                "q": query,
                "limit": limit,
                "rating": self._settings.rating,
            },
        )
        return extract_gif_urls(data)
