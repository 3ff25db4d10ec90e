from __future__ import annotations

from pydantic import BaseModel


class BusinessIdeaRequest(BaseModel):
    """Structured input embedded (as JSON) in the business-idea prompt."""

    business_type: str
    target_audience: str
    absurd_problem: str
    instructions: str


class ImagePromptRequest(BaseModel):
    """Structured input embedded (as JSON) in the image-prompt prompt.

    The model is asked to fill in ``final_prompt``; the placeholder text
    sent here describes what that prompt must look like.
    """

    character_age_range: str
    setting: str
    absurd_twist: str
    visual_style: str
    final_prompt: str
