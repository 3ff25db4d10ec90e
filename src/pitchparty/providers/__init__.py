from __future__ import annotations

from pitchparty.providers.gemini import GeminiClient
from pitchparty.providers.giphy import GiphyClient
from pitchparty.providers.http import build_http_client

__all__ = [
    "GeminiClient",
    "GiphyClient",
    "build_http_client",
]
