"""FastAPI routes for the JobFit API."""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from jobfit.models.job import Job, JobSource
from jobfit.models.profile import ResumeProfile
from jobfit.models.tailoring import CoverLetter, CoverLetterCritique, TailoredBlock
from jobfit.models.usage import AdmissionDecision, UsageStats
from jobfit.services.local_state import LocalState
from jobfit.services.notifications import Notification
from jobfit.services.pipeline import JobPipeline
from jobfit.services.tailoring import TailoringClient
from jobfit.utils.errors import (
    AuthOrPermissionError,
    ContentUnavailableError,
    DailyQuotaExhaustedError,
    JobFitError,
    MalformedRequestError,
    MalformedResponseError,
    PersistenceError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

# Create router
router = APIRouter()


# ==================== Error Response Model ====================


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
    error_type: str
    errors: Optional[List[Dict[str, Any]]] = None


class AdmissionDeniedResponse(ErrorResponse):
    """Returned when a submission is over quota."""

    reason: str
    limit: Optional[int] = None


# ==================== Exception Handlers ====================


async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "error_type": "ValidationError",
            "errors": exc.errors(include_url=False, include_context=False),
        },
    )


async def jobfit_exception_handler(request: Request, exc: JobFitError) -> JSONResponse:
    """Handle application-specific errors."""
    status_code = 500

    if isinstance(exc, (RateLimitError, AuthOrPermissionError, MalformedRequestError)):
        status_code = exc.status_code
    elif isinstance(exc, DailyQuotaExhaustedError):
        status_code = 429
    elif isinstance(exc, MalformedResponseError):
        status_code = 502
    elif isinstance(exc, ContentUnavailableError):
        status_code = 422
    elif isinstance(exc, PersistenceError):
        status_code = 503

    return JSONResponse(
        status_code=status_code,
        content={
            "detail": exc.user_message,
            "error_type": type(exc).__name__,
        },
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_type": "HTTPException",
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_type": "InternalError",
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the handlers above to an application."""
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(JobFitError, jobfit_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)


# ==================== Request/Response Models ====================


class SubmitJobRequest(BaseModel):
    """Request model for job submission. Exactly one of url or text is required."""

    url: Optional[str] = Field(default=None, description="Job posting URL")
    text: Optional[str] = Field(default=None, description="Pasted job description")
    identity_id: Optional[str] = Field(default=None, min_length=1, description="Submitting user")

    @model_validator(mode="after")
    def exactly_one_source(self) -> "SubmitJobRequest":
        """Validate that exactly one non-blank source is given."""
        given = [v for v in (self.url, self.text) if v is not None and v.strip()]
        if len(given) != 1:
            raise ValueError("provide exactly one of url or text")
        return self

    def to_source(self) -> JobSource:
        if self.url is not None and self.url.strip():
            return JobSource.url(self.url)
        return JobSource.text(self.text)


class ViewRequest(BaseModel):
    """Request model for saving the current view."""

    view: str = Field(min_length=1)


class LocalStateResponse(BaseModel):
    """Device-local flags and counters."""

    welcome_seen: bool
    current_view: str
    requests_today: int


class CoverLetterRequest(BaseModel):
    """Request model for cover letter generation."""

    additional_context: Optional[str] = Field(default=None, description="Extra facts to mention")
    revision_feedback: List[str] = Field(
        default_factory=list, description="Critique points to fix in a revised draft"
    )


class CritiqueRequest(BaseModel):
    """Request model for a cover letter critique."""

    cover_letter: str = Field(min_length=1)

    @field_validator("cover_letter")
    @classmethod
    def cover_letter_not_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("cover_letter cannot be only whitespace")
        return v


class SummaryResponse(BaseModel):
    summary: str


ADMISSION_MESSAGES = {
    "free_limit_reached": "You've used all {limit} free analyses. Upgrade to keep going.",
    "daily_limit_reached": "You've reached today's limit of {limit} analyses. Come back tomorrow!",
}


# ==================== Dependencies ====================


def get_pipeline(request: Request) -> JobPipeline:
    """Dependency for the job pipeline built at startup."""
    return request.app.state.pipeline


def get_local_state(request: Request) -> LocalState:
    """Dependency for device-local state."""
    return request.app.state.local_state


def get_tailoring(request: Request) -> TailoringClient:
    """Dependency for the tailoring client."""
    return request.app.state.tailoring


# ==================== Endpoints ====================


@router.post("/jobs", response_model=Job, status_code=202)
async def submit_job(
    request: SubmitJobRequest,
    pipeline: JobPipeline = Depends(get_pipeline),
) -> Any:
    """
    Submit a job posting for analysis.

    Returns immediately with the queued job; analysis continues in the
    background. Over-quota submissions get a 429 and create nothing.
    """
    identity = None
    if request.identity_id:
        identity = await pipeline.ledger.resolve_identity(request.identity_id)

    outcome = await pipeline.submit(request.to_source(), identity)

    if isinstance(outcome, AdmissionDecision):
        body = AdmissionDeniedResponse(
            detail=ADMISSION_MESSAGES[outcome.reason].format(limit=outcome.limit),
            error_type="AdmissionDenied",
            reason=outcome.reason,
            limit=outcome.limit,
        )
        return JSONResponse(status_code=429, content=body.model_dump(exclude_none=True))

    return outcome


@router.get("/jobs", response_model=List[Job])
async def list_jobs(pipeline: JobPipeline = Depends(get_pipeline)) -> List[Job]:
    """List all jobs, newest first."""
    return pipeline.jobs


@router.get("/jobs/{job_id}", response_model=Job)
async def get_job(job_id: str, pipeline: JobPipeline = Depends(get_pipeline)) -> Job:
    """Get a single job by ID."""
    job = pipeline.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    return job


@router.delete("/jobs/{job_id}", status_code=204)
async def delete_job(job_id: str, pipeline: JobPipeline = Depends(get_pipeline)) -> None:
    """Delete a job. A running analysis is not stopped but its result is discarded."""
    if pipeline.get(job_id) is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    await pipeline.delete(job_id)


def require_completed_job(job_id: str, pipeline: JobPipeline) -> Job:
    """Look up a job whose analysis is finished, or raise 404/409."""
    job = pipeline.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
    if job.status != "completed":
        raise HTTPException(status_code=409, detail=f"Job {job_id} has no completed analysis")
    return job


@router.post("/jobs/{job_id}/cover-letter", response_model=CoverLetter)
async def generate_cover_letter(
    job_id: str,
    request: Optional[CoverLetterRequest] = None,
    pipeline: JobPipeline = Depends(get_pipeline),
    tailoring: TailoringClient = Depends(get_tailoring),
) -> CoverLetter:
    """Write a cover letter using the profile and instructions from the analysis."""
    job = require_completed_job(job_id, pipeline)
    request = request or CoverLetterRequest()

    profiles = {profile.id: profile for profile in await pipeline.profile_store.list()}
    profile = profiles.get(job.result.best_resume_profile_id)
    if profile is None:
        raise HTTPException(
            status_code=404,
            detail=f"Resume profile not found: {job.result.best_resume_profile_id}",
        )

    return await tailoring.generate_cover_letter(
        job.captured_text,
        profile,
        job.result.tailoring_instructions,
        additional_context=request.additional_context,
        revision_feedback=request.revision_feedback,
    )


@router.post("/jobs/{job_id}/cover-letter/critique", response_model=CoverLetterCritique)
async def critique_cover_letter(
    job_id: str,
    request: CritiqueRequest,
    pipeline: JobPipeline = Depends(get_pipeline),
    tailoring: TailoringClient = Depends(get_tailoring),
) -> CoverLetterCritique:
    """Score a cover letter for this job as a hiring manager would."""
    job = require_completed_job(job_id, pipeline)
    return await tailoring.critique_cover_letter(job.captured_text, request.cover_letter)


@router.post("/jobs/{job_id}/summary", response_model=SummaryResponse)
async def generate_summary(
    job_id: str,
    pipeline: JobPipeline = Depends(get_pipeline),
    tailoring: TailoringClient = Depends(get_tailoring),
) -> SummaryResponse:
    """Write a professional summary aimed at this job."""
    job = require_completed_job(job_id, pipeline)
    profiles = await pipeline.profile_store.list()
    summary = await tailoring.generate_tailored_summary(job.captured_text, profiles)
    return SummaryResponse(summary=summary)


@router.post("/jobs/{job_id}/tailored-blocks", response_model=List[TailoredBlock])
async def tailor_blocks(
    job_id: str,
    pipeline: JobPipeline = Depends(get_pipeline),
    tailoring: TailoringClient = Depends(get_tailoring),
) -> List[TailoredBlock]:
    """Rewrite the experience blocks the analysis recommended."""
    job = require_completed_job(job_id, pipeline)
    profiles = await pipeline.profile_store.list()
    return await tailoring.tailor_recommended_blocks(job.captured_text, job.result, profiles)


@router.get("/usage/{identity_id}", response_model=UsageStats)
async def get_usage(identity_id: str, pipeline: JobPipeline = Depends(get_pipeline)) -> UsageStats:
    """Usage counters and limits for an identity."""
    identity = await pipeline.ledger.resolve_identity(identity_id)
    return await pipeline.ledger.get_stats(identity.id, identity.tier)


@router.get("/notifications", response_model=List[Notification])
async def get_notifications(pipeline: JobPipeline = Depends(get_pipeline)) -> List[Notification]:
    """Return and clear pending notifications."""
    return pipeline.notifier.drain()


@router.get("/profiles", response_model=List[ResumeProfile])
async def list_profiles(pipeline: JobPipeline = Depends(get_pipeline)) -> List[ResumeProfile]:
    """List resume profiles."""
    return await pipeline.profile_store.list()


@router.put("/profiles/{profile_id}", response_model=ResumeProfile)
async def save_profile(
    profile_id: str,
    profile: ResumeProfile,
    pipeline: JobPipeline = Depends(get_pipeline),
) -> ResumeProfile:
    """Create or replace a resume profile."""
    if profile.id != profile_id:
        raise HTTPException(status_code=400, detail="Profile id does not match URL")
    await pipeline.profile_store.save(profile)
    return profile


@router.delete("/profiles/{profile_id}", status_code=204)
async def delete_profile(profile_id: str, pipeline: JobPipeline = Depends(get_pipeline)) -> None:
    """Delete a resume profile."""
    if not await pipeline.profile_store.delete(profile_id):
        raise HTTPException(status_code=404, detail=f"Profile not found: {profile_id}")


@router.get("/state", response_model=LocalStateResponse)
async def get_state(state: LocalState = Depends(get_local_state)) -> LocalStateResponse:
    """Onboarding flag, current view and today's request count."""
    return LocalStateResponse(
        welcome_seen=await state.welcome_seen(),
        current_view=await state.current_view(),
        requests_today=await state.requests_today(),
    )


@router.post("/state/welcome", status_code=204)
async def mark_welcome_seen(state: LocalState = Depends(get_local_state)) -> None:
    await state.mark_welcome_seen()


@router.put("/state/view", status_code=204)
async def set_view(request: ViewRequest, state: LocalState = Depends(get_local_state)) -> None:
    await state.set_current_view(request.view)
