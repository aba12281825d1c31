"""Pydantic data models for JobFit."""

from jobfit.models.analysis import DistilledJob, JobAnalysis
from jobfit.models.job import Job, JobSource, JobStatusValue
from jobfit.models.profile import ExperienceBlock, ResumeProfile
from jobfit.models.tailoring import CoverLetter, CoverLetterCritique, TailoredBlock
from jobfit.models.usage import AdmissionDecision, Identity, UsageRecord, UsageStats

__all__ = [
    "DistilledJob",
    "JobAnalysis",
    "Job",
    "JobSource",
    "JobStatusValue",
    "ExperienceBlock",
    "ResumeProfile",
    "CoverLetter",
    "CoverLetterCritique",
    "TailoredBlock",
    "AdmissionDecision",
    "Identity",
    "UsageRecord",
    "UsageStats",
]
