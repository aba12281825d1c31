"""Tailoring output Pydantic models: cover letters, critiques, rewritten blocks."""

from typing import Literal

from pydantic import BaseModel, Field


class CoverLetter(BaseModel):
    """A generated cover letter and the prompt variant that produced it."""

    text: str
    prompt_version: str


class CoverLetterCritique(BaseModel):
    """A hiring manager's read of a cover letter."""

    score: int = Field(ge=0, le=10)
    decision: Literal["interview", "reject", "maybe"]
    strengths: list[str] = Field(default_factory=list)
    feedback: list[str] = Field(default_factory=list)


class TailoredBlock(BaseModel):
    """An experience block's bullets rewritten for one job."""

    block_id: str
    title: str
    original_bullets: list[str]
    tailored_bullets: list[str]
