from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Bundle(BaseModel):
    """One playable round: everything a participant pitches from.

    Immutable once built. Serialises with the camelCase keys the game page
    script reads (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(frozen=True)

    business_name: str = Field(min_length=1, serialization_alias="businessName")
    slogan: str = Field(min_length=1)
    image1: str = Field(min_length=1)  # data: URI
    image2: str = Field(min_length=1)  # data: URI
    clapping_gif: str = Field(min_length=1, serialization_alias="clappingGif")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        serialization_alias="createdAt",
    )


class CacheStatus(BaseModel):
    """Read-only snapshot of the prefetch cache for the admin page."""

    size: int
    capacity: int
    loaded: bool
    preloader_running: bool
