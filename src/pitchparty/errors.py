from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    BUSINESS_IDEA_FAILED = "BUSINESS_IDEA_FAILED"
    IMAGE_PROMPT_FAILED = "IMAGE_PROMPT_FAILED"
    IMAGE_GENERATION_FAILED = "IMAGE_GENERATION_FAILED"
    ASSET_SEARCH_FAILED = "ASSET_SEARCH_FAILED"
    UPSTREAM_REQUEST_FAILED = "UPSTREAM_REQUEST_FAILED"
    UNPARSEABLE_RESPONSE = "UNPARSEABLE_RESPONSE"
    RETRIES_EXHAUSTED = "RETRIES_EXHAUSTED"
    CANCELLED = "CANCELLED"
    INVALID_INPUT = "INVALID_INPUT"


class PitchPartyError(Exception):
    """Raised for all expected failure conditions in content generation.

    ``recoverable`` doubles as the retry policy: the backoff retrier only
    retries recoverable errors. A non-recoverable error (e.g. a malformed
    generation result) propagates on the first attempt.

    Caught at the HTTP boundary (web.py) and by the preloader loop, which
    logs it and carries on. Never let it take the process down.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: str,
        recoverable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.recoverable = recoverable

    def to_dict(self) -> dict:
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "suggestion": self.suggestion,
                "recoverable": self.recoverable,
            }
        }
