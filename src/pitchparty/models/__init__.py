from __future__ import annotations

from pitchparty.models.bundle import Bundle, CacheStatus
from pitchparty.models.prompts import BusinessIdeaRequest, ImagePromptRequest

__all__ = [
    # bundle
    "Bundle",
    "CacheStatus",
    # prompts
    "BusinessIdeaRequest",
    "ImagePromptRequest",
]
