"""Builds one complete bundle from the remote providers.

Steps, each remote call wrapped in ``retry_with_backoff``:
  1. business name + slogan (text): fatal on failure
  2. clapping GIF (selector): placeholder on failure
  3. image prompt 1 → image 1: fatal on failure
  4. image prompt 2 → image 2: fatal on failure

Prompts are assembled from randomly drawn fields serialised as JSON, so
consecutive bundles come out different even at the same temperature.
"""

from __future__ import annotations

import random
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TypeVar

import structlog

from pitchparty.config import PLACEHOLDER_GIF_URL
from pitchparty.errors import ErrorCode, PitchPartyError
from pitchparty.models.bundle import Bundle
from pitchparty.models.prompts import BusinessIdeaRequest, ImagePromptRequest
from pitchparty.retry import retry_with_backoff

if TYPE_CHECKING:
    import asyncio
    from collections.abc import Awaitable, Callable

    from pitchparty.config import RetrySettings
    from pitchparty.protocols import (
        GifSelectorProtocol,
        ImageGeneratorProtocol,
        TextGeneratorProtocol,
    )

log = structlog.get_logger()

T = TypeVar("T")

BUSINESS_TYPES = [
    "a mobile app",
    "a subscription box",
    "a gourmet food truck",
    "a line of smart home devices",
    "a bespoke tailoring service",
    "a virtual reality arcade",
    "an artisanal coffee shop",
    "a pet psychic agency",
    "a zero-gravity yoga studio",
]
TARGET_AUDIENCES = [
    "time-traveling tourists",
    "sentient houseplants",
    "retired superheroes",
    "aliens on vacation",
    "ghosts with unfinished business",
    "zombies who are into personal growth",
    "dolphins who want to be web developers",
    "cats who are learning to code",
    "very-online vampires",
]
ABSURD_PROBLEMS = [
    "socks that are always lonely",
    "pigeons that are too loud",
    "a toaster with an attitude problem",
    "the existential dread of a Roomba",
    "lost TV remotes",
    "dreams that are too boring",
    "awkward silences in elevators",
    "when your pet starts talking about philosophy",
    "running out of things to watch on streaming services",
]
BUSINESS_IDEA_INSTRUCTIONS = (
    "Generate a fake, humorous business name and a slogan for it based on the fields "
    "above. Return it as 'Name: <name> Slogan: <slogan>'"
)

CHARACTER_AGES = ["child", "teenager", "adult", "middle-aged", "elderly"]
SETTINGS = [
    "unexpected public place",
    "outer space",
    "underwater",
    "historic era",
    "corporate office",
    "dreamlike zone",
]
ABSURD_TWISTS = [
    "prop or situation that contradicts logic or expectations",
    "a mundane task performed in an extreme environment",
    "animals behaving like humans in a specific, detailed way",
    "a historical figure using modern technology",
    "an inanimate object coming to life with a strong personality",
]
IMAGE_PROMPT_INSTRUCTIONS = (
    "[Write a single, richly detailed, photorealistic image prompt for a SFW AI image "
    "generator. It should use these fields to describe a vivid, absurd and comedic scene. "
    "The description must be specific, visual, and funny, like something from a dream or "
    "a comedy sketch. Avoid clichés, generic phrasing and jokes involving suicide.]"
)

_SLOGAN_DELIMITER = "Slogan:"
_NAME_PREFIX = "Name:"


def _unparseable(what: str, text: str) -> PitchPartyError:
    return PitchPartyError(
        code=ErrorCode.UNPARSEABLE_RESPONSE,
        message=f"Unexpected {what} format from text generator: {text!r}",
        suggestion="The model ignored the requested output format; generate a new bundle.",
        recoverable=False,
    )


def parse_business_idea(text: str) -> tuple[str, str]:
    """Split ``"Name: <name> Slogan: <slogan>"`` into ``(name, slogan)``.

    Raises a non-recoverable PitchPartyError when the delimiter is missing,
    repeated, or either half is empty.
    """
    parts = text.split(_SLOGAN_DELIMITER)
    if len(parts) != 2:
        raise _unparseable("business idea", text)

    name = parts[0].strip().removeprefix(_NAME_PREFIX).strip()
    slogan = parts[1].strip()
    if not name or not slogan:
        raise _unparseable("business idea", text)
    return name, slogan


# Already specific enough to surface as-is
_PASSTHROUGH_CODES = frozenset({ErrorCode.CANCELLED, ErrorCode.UNPARSEABLE_RESPONSE})


def _step_error(code: ErrorCode, step: str, exc: PitchPartyError) -> PitchPartyError:
    """Re-label a provider/retrier error with the generation step that failed."""
    return PitchPartyError(
        code=code,
        message=f"Failed to generate {step}: {exc.message}",
        suggestion=exc.suggestion,
        recoverable=exc.recoverable,
    )


class ContentGenerator:
    """Implements ContentGeneratorProtocol against the provider protocols."""

    def __init__(
        self,
        text: TextGeneratorProtocol,
        images: ImageGeneratorProtocol,
        selector: GifSelectorProtocol,
        retry: RetrySettings,
        *,
        image_prompt_max_tokens: int | None = 300,
        placeholder_gif: str = PLACEHOLDER_GIF_URL,
        rng: random.Random | None = None,
    ) -> None:
        self._text = text
        self._images = images
        self._selector = selector
        self._retry = retry
        self._image_prompt_max_tokens = image_prompt_max_tokens
        self._placeholder_gif = placeholder_gif
        self._rng = rng or random.Random()

    async def generate(self, cancel: asyncio.Event | None = None) -> Bundle:
        """Produce one complete bundle. Raises PitchPartyError on any fatal step."""
        business_name, slogan = await self.generate_business_idea(cancel)
        clapping_gif = await self._pick_gif(cancel)
        image1 = await self._generate_illustration(1, cancel)
        image2 = await self._generate_illustration(2, cancel)

        bundle = Bundle(
            business_name=business_name,
            slogan=slogan,
            image1=image1,
            image2=image2,
            clapping_gif=clapping_gif,
            created_at=datetime.now(UTC),
        )
        log.info("bundle_generated", business_name=business_name)
        return bundle

    async def generate_business_idea(self, cancel: asyncio.Event | None = None) -> tuple[str, str]:
        request = BusinessIdeaRequest(
            business_type=self._rng.choice(BUSINESS_TYPES),
            target_audience=self._rng.choice(TARGET_AUDIENCES),
            absurd_problem=self._rng.choice(ABSURD_PROBLEMS),
            instructions=BUSINESS_IDEA_INSTRUCTIONS,
        )
        prompt = (
            "Based on the following JSON, fulfill the instructions:\n\n"
            f"{request.model_dump_json()}"
        )

        try:
            text = await self._with_retry(
                lambda: self._text.generate_text(prompt), "business_idea", cancel
            )
        except PitchPartyError as exc:
            if exc.code in _PASSTHROUGH_CODES:
                raise
            raise _step_error(ErrorCode.BUSINESS_IDEA_FAILED, "business idea", exc) from exc

        # Parsed outside the retry loop: a malformed answer is not transient
        return parse_business_idea(text)

    async def generate_image_prompt(self, cancel: asyncio.Event | None = None) -> str:
        request = ImagePromptRequest(
            character_age_range=self._rng.choice(CHARACTER_AGES),
            setting=self._rng.choice(SETTINGS),
            absurd_twist=self._rng.choice(ABSURD_TWISTS),
            visual_style="photorealistic",
            final_prompt=IMAGE_PROMPT_INSTRUCTIONS,
        )
        prompt = (
            "Based on the following JSON, generate the 'final_prompt':\n\n"
            f"{request.model_dump_json()}"
        )

        try:
            text = await self._with_retry(
                lambda: self._text.generate_text(
                    prompt, max_output_tokens=self._image_prompt_max_tokens
                ),
                "image_prompt",
                cancel,
            )
        except PitchPartyError as exc:
            if exc.code in _PASSTHROUGH_CODES:
                raise
            raise _step_error(ErrorCode.IMAGE_PROMPT_FAILED, "image prompt", exc) from exc

        image_prompt = text.strip()
        if not image_prompt:
            raise _unparseable("image prompt", text)
        return image_prompt

    async def generate_image(self, prompt: str, cancel: asyncio.Event | None = None) -> str:
        try:
            return await self._with_retry(
                lambda: self._images.generate_image(prompt), "image", cancel
            )
        except PitchPartyError as exc:
            if exc.code in _PASSTHROUGH_CODES:
                raise
            raise _step_error(ErrorCode.IMAGE_GENERATION_FAILED, "image", exc) from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _generate_illustration(self, index: int, cancel: asyncio.Event | None) -> str:
        prompt = await self.generate_image_prompt(cancel)
        log.debug("image_prompt_generated", index=index, prompt=prompt)
        return await self.generate_image(prompt, cancel)

    async def _pick_gif(self, cancel: asyncio.Event | None) -> str:
        try:
            gif = await self._selector.pick(cancel)
        except Exception:
            log.warning("clapping_gif_unavailable", exc_info=True)
            return self._placeholder_gif
        return gif or self._placeholder_gif

    async def _with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        name: str,
        cancel: asyncio.Event | None,
    ) -> T:
        return await retry_with_backoff(
            operation,
            max_retries=self._retry.max_retries,
            base_delay=self._retry.base_delay_seconds,
            cancel=cancel,
            operation_name=name,
        )
