"""Protocol interfaces for swappable components.

The content generator and the GIF selector reference these protocols, not
the concrete provider clients. This allows:
- Tests to use deterministic in-memory fakes
- Other providers to be swapped in without touching the generation code

Implementations make exactly one remote call per method invocation and raise
``PitchPartyError`` on failure. Retrying is the caller's job (see retry.py).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    import asyncio

    from pitchparty.models.bundle import Bundle


class TextGeneratorProtocol(Protocol):
    """Free-form text generation from a single prompt."""

    async def generate_text(self, prompt: str, *, max_output_tokens: int | None = None) -> str: ...


class ImageGeneratorProtocol(Protocol):
    """Image generation. Returns an embeddable reference (a data: URI)."""

    async def generate_image(self, prompt: str) -> str: ...


class AssetSearchProtocol(Protocol):
    """Search for animated assets. Returns a list of asset URLs."""

    @property
    def configured(self) -> bool: ...

    async def search(self, query: str, limit: int) -> list[str]: ...


class GifSelectorProtocol(Protocol):
    """Picks one supplementary GIF URL. Never raises for provider failures."""

    async def pick(self, cancel: asyncio.Event | None = None) -> str: ...


class ContentGeneratorProtocol(Protocol):
    """Produces one complete bundle or raises ``PitchPartyError``."""

    async def generate(self, cancel: asyncio.Event | None = None) -> Bundle: ...
