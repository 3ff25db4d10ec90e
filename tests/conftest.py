"""Shared test fixtures for the pitchparty test suite.

The fakes implement the provider protocols deterministically: each records
its calls and raises queued errors before returning canned results.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import pytest

from pitchparty.config import Settings
from pitchparty.models.bundle import Bundle

BUSINESS_IDEA_TEXT = "Name: Sock Soulmates Slogan: No sock left behind."
IMAGE_PROMPT_TEXT = "A retired superhero teaching yoga to pigeons in zero gravity."


class FakeTextGenerator:
    def __init__(self) -> None:
        self.business_idea = BUSINESS_IDEA_TEXT
        self.image_prompt = IMAGE_PROMPT_TEXT
        self.errors: list[Exception] = []
        self.prompts: list[str] = []
        self.max_tokens: list[int | None] = []

    async def generate_text(self, prompt: str, *, max_output_tokens: int | None = None) -> str:
        self.prompts.append(prompt)
        self.max_tokens.append(max_output_tokens)
        if self.errors:
            raise self.errors.pop(0)
        if "fulfill the instructions" in prompt:
            return self.business_idea
        return self.image_prompt


class FakeImageGenerator:
    def __init__(self) -> None:
        self.errors: list[Exception] = []
        self.prompts: list[str] = []

    async def generate_image(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.errors:
            raise self.errors.pop(0)
        return f"data:image/png;base64,aW1hZ2U{len(self.prompts)}"


class FakeAssetSearch:
    def __init__(self, urls: list[str] | None = None, *, configured: bool = True) -> None:
        self.urls = urls if urls is not None else [f"https://gifs.test/{i}.gif" for i in range(5)]
        self.configured = configured
        self.errors: list[Exception] = []
        self.calls = 0

    async def search(self, query: str, limit: int) -> list[str]:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return list(self.urls[:limit])


class StaticGifSelector:
    def __init__(self, url: str = "https://gifs.test/applause.gif") -> None:
        self.url = url
        self.calls = 0

    async def pick(self, cancel: asyncio.Event | None = None) -> str:
        self.calls += 1
        return self.url


class FakeContentGenerator:
    """ContentGeneratorProtocol fake producing numbered bundles.

    ``errors`` are raised first, one per call. When ``gate`` is set, each
    call waits on it before producing a bundle.
    """

    def __init__(self) -> None:
        self.errors: list[Exception] = []
        self.gate: asyncio.Event | None = None
        self.calls = 0
        self.produced = 0

    async def generate(self, cancel: asyncio.Event | None = None) -> Bundle:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.errors:
            raise self.errors.pop(0)
        self.produced += 1
        return make_test_bundle(self.produced)


def make_test_bundle(n: int) -> Bundle:
    return Bundle(
        business_name=f"Business {n}",
        slogan=f"Slogan {n}",
        image1=f"data:image/png;base64,one{n}",
        image2=f"data:image/png;base64,two{n}",
        clapping_gif="https://gifs.test/applause.gif",
    )


@pytest.fixture()
def make_bundle() -> Callable[[int], Bundle]:
    return make_test_bundle


@pytest.fixture()
def settings() -> Settings:
    """Settings with fast timings so loops and retries run in milliseconds."""
    return Settings(
        cache={
            "size": 5,
            "fill_fraction": 0.8,
            "maintenance_interval_seconds": 0.01,
            "failure_cooldown_seconds": 0.01,
            "pop_wait_seconds": 0.01,
        },
        retry={"max_retries": 3, "base_delay_seconds": 0.001},
        giphy={"api_key": "test-key", "pool_ttl_seconds": 3600},
    )


@pytest.fixture()
def text_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest.fixture()
def image_generator() -> FakeImageGenerator:
    return FakeImageGenerator()


@pytest.fixture()
def asset_search() -> FakeAssetSearch:
    return FakeAssetSearch()


@pytest.fixture()
def gif_selector() -> StaticGifSelector:
    return StaticGifSelector()


@pytest.fixture()
def content_generator() -> FakeContentGenerator:
    return FakeContentGenerator()
