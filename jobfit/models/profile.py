"""Experience profile Pydantic models."""

from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator

BlockType = Literal["summary", "work", "education", "project", "skill", "other"]


class ExperienceBlock(BaseModel):
    """One user-visible entry of a resume profile."""

    id: str = Field(default_factory=lambda: str(uuid4()), min_length=1)
    type: BlockType = "work"
    title: str = Field(min_length=1)
    organization: str = ""
    date_range: str = ""
    bullets: list[str] = Field(default_factory=list)
    is_visible: bool = True

    @field_validator("title")
    @classmethod
    def title_not_whitespace(cls, v: str) -> str:
        """Validate that title is not only whitespace."""
        if not v.strip():
            raise ValueError("title cannot be only whitespace")
        return v


class ResumeProfile(BaseModel):
    """A named collection of experience blocks."""

    id: str = Field(default_factory=lambda: str(uuid4()), min_length=1)
    name: str = Field(min_length=1)
    blocks: list[ExperienceBlock] = Field(default_factory=list)

    @property
    def visible_blocks(self) -> list[ExperienceBlock]:
        return [block for block in self.blocks if block.is_visible]
