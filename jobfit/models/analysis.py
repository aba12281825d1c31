"""Analysis result Pydantic models."""

from typing import Optional

from pydantic import BaseModel, Field


class DistilledJob(BaseModel):
    """Structured summary of a messy job posting."""

    company_name: str
    role_title: str
    application_deadline: Optional[str] = None
    key_skills: list[str] = Field(default_factory=list)
    core_responsibilities: list[str] = Field(default_factory=list)


class JobAnalysis(BaseModel):
    """Fit analysis of a job posting against the user's profiles."""

    compatibility_score: int = Field(ge=0, le=100)
    best_resume_profile_id: str = Field(min_length=1)
    reasoning: str = ""
    strengths: list[str]
    weaknesses: list[str]
    tailoring_instructions: list[str]
    recommended_block_ids: list[str] = Field(default_factory=list)
    distilled_job: Optional[DistilledJob] = None
