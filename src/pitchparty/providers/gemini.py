"""Google Generative Language API client (Gemini text, Imagen images).

Talks to the REST endpoints directly over the shared httpx client:
- ``models/{model}:generateContent`` for text
- ``models/{model}:predict`` for Imagen image generation

One HTTP request per call; retries are applied by the content generator.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from pitchparty.errors import ErrorCode, PitchPartyError
from pitchparty.providers.http import request_json

if TYPE_CHECKING:
    import httpx

    from pitchparty.config import GeminiSettings

log = structlog.get_logger()

_PROVIDER = "Gemini"


def extract_text(data: dict) -> str:
    """Return the first non-empty text part of the first candidate, or ''."""
    candidates = data.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    content = candidates[0].get("content") or {}
    for part in content.get("parts") or []:
        if isinstance(part, dict) and part.get("text"):
            return str(part["text"])
    return ""


def extract_image(data: dict) -> str:
    """Return the first prediction as a data: URI, or ''."""
    for prediction in data.get("predictions") or []:
        if not isinstance(prediction, dict):
            continue
        encoded = prediction.get("bytesBase64Encoded")
        if encoded:
            mime_type = prediction.get("mimeType") or "image/png"
            return f"data:{mime_type};base64,{encoded}"
    return ""


class GeminiClient:
    """Implements TextGeneratorProtocol and ImageGeneratorProtocol."""

    def __init__(self, client: httpx.AsyncClient, settings: GeminiSettings) -> None:
        self._client = client
        self._settings = settings

    def _url(self, model: str, method: str) -> str:
        return f"{self._settings.base_url.rstrip('/')}/models/{model}:{method}"

    async def generate_text(self, prompt: str, *, max_output_tokens: int | None = None) -> str:
        generation_config: dict = {"temperature": self._settings.temperature}
        if max_output_tokens is not None:
            generation_config["maxOutputTokens"] = max_output_tokens

        data = await request_json(
            self._client,
            "POST",
            self._url(self._settings.text_model, "generateContent"),
            provider=_PROVIDER,
            headers={"x-goog-api-key": self._settings.api_key},
            json={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": generation_config,
            },
        )

        text = extract_text(data)
        if not text:
            raise PitchPartyError(
                code=ErrorCode.UPSTREAM_REQUEST_FAILED,
                message="Gemini response contained no text",
                suggestion="The response may have been blocked by a safety filter; try again.",
                recoverable=True,
            )
        log.debug("gemini_text_generated", model=self._settings.text_model, length=len(text))
        return text

    async def generate_image(self, prompt: str) -> str:
        data = await request_json(
            self._client,
            "POST",
            self._url(self._settings.image_model, "predict"),
            provider=_PROVIDER,
            headers={"x-goog-api-key": self._settings.api_key},
            json={
                "instances": [{"prompt": f"generate an image of: {prompt}"}],
                "parameters": {"sampleCount": 1},
            },
        )

        image = extract_image(data)
        if not image:
            raise PitchPartyError(
                code=ErrorCode.UPSTREAM_REQUEST_FAILED,
                message=f"No image data in response for prompt: {prompt}",
                suggestion="The prompt may have been filtered; try again.",
                recoverable=True,
            )
        log.debug("gemini_image_generated", model=self._settings.image_model)
        return image
