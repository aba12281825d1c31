"""Job fit analysis through a PydanticAI agent."""

import logging
import os
from typing import Any, List, Optional

from pydantic import ValidationError
from pydantic_ai import Agent
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

from jobfit.models.analysis import JobAnalysis
from jobfit.models.profile import ResumeProfile
from jobfit.utils.errors import (
    AuthOrPermissionError,
    DailyQuotaExhaustedError,
    JobFitError,
    MalformedRequestError,
    MalformedResponseError,
    RateLimitError,
    is_daily_quota_error,
    to_user_error,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_JOB_DESCRIPTION_LENGTH = 15000

JOB_FIT_SYSTEM_PROMPT = """
You are a ruthless technical recruiter screening candidates for a role.

TASK:
1. DISTILL: Extract the messy job text into a structured summary (company, role,
   deadline if stated, key skills, core responsibilities).
2. ANALYZE: Compare the job to the candidate's experience blocks with extreme scrutiny.
3. MATCH BREAKDOWN: List strengths (PROVEN skills only) and weaknesses (MISSING requirements).
4. SCORE: Rate compatibility from 0 to 100. Be harsh. Matching under 50% is a reject.
5. PROFILE: Pick the id of the resume profile that fits best.
6. TAILORING:
   - Select only the BLOCK_IDs that are vital to this job. Exclude anything irrelevant.
   - Give concrete instructions. Don't say "Highlight your skills." Say "Rename
     'Software Engineer' to 'React Developer' to match line 4 of the job description."
"""


def build_resume_context(profiles: List[ResumeProfile]) -> str:
    """
    Render the visible blocks of every profile for the prompt.

    Hidden blocks are left out so the model can never recommend them.
    """
    sections = []
    for profile in profiles:
        lines = [f"PROFILE_ID: {profile.id} ({profile.name})"]
        for block in profile.visible_blocks:
            lines.append(
                f"BLOCK_ID: {block.id}\n"
                f"ROLE: {block.title}\n"
                f"ORG: {block.organization or ''}\n"
                f"DATE: {block.date_range or ''}\n"
                f"DETAILS: {' '.join(block.bullets)}"
            )
        sections.append("\n---\n".join(lines))
    return "\n\n".join(sections)


def build_analysis_prompt(
    job_text: str,
    profiles: List[ResumeProfile],
    max_length: int = DEFAULT_MAX_JOB_DESCRIPTION_LENGTH,
) -> str:
    """Combine the truncated job text and resume context into one prompt."""
    return (
        f'RAW JOB TEXT (Scraped):\n"{job_text[:max_length]}"\n\n'
        f"MY EXPERIENCE PROFILES (Blocks with IDs):\n{build_resume_context(profiles)}"
    )


def map_inference_error(error: BaseException) -> JobFitError:
    """
    Translate a PydanticAI or provider failure into a typed error.

    HTTP failures are classified by status code; a 429 whose body names a
    per-day limit is the daily ceiling rather than a transient one.
    """
    if isinstance(error, JobFitError):
        return error

    if isinstance(error, ModelHTTPError):
        status = error.status_code
        if status == 429:
            if is_daily_quota_error(Exception(str(error.body))):
                return DailyQuotaExhaustedError()
            return RateLimitError()
        if status in (401, 403):
            return AuthOrPermissionError(status_code=status)
        if status == 404:
            return MalformedRequestError("Model not found. Try a different key or region.", 404)
        if status == 400:
            return MalformedRequestError()
        if status >= 500:
            # Provider overload behaves like short-window throttling
            return RateLimitError(status_code=status)

    if isinstance(error, (UnexpectedModelBehavior, ValidationError)):
        return MalformedResponseError()

    return to_user_error(error)



def create_agent(model: str, system_prompt: str, output_type: Any) -> Agent:
    """Create a PydanticAI agent for one structured task.

    Args:
        model: PydanticAI model name
        system_prompt: Instructions for the task
        output_type: Type the agent's output is validated against

    Returns:
        Configured Agent
    """
    from jobfit.config import get_settings

    settings = get_settings()

    # Set environment variable for pydantic-ai to pick up
    if settings.anthropic_api_key:
        os.environ["ANTHROPIC_API_KEY"] = settings.anthropic_api_key

    return Agent(
        model,
        system_prompt=system_prompt,
        output_type=output_type,
        retries=2,
    )


def create_analysis_agent(model: str) -> Agent[None, JobAnalysis]:
    """Create the job fit analysis agent.

    Returns:
        A PydanticAI Agent returning a validated JobAnalysis.
    """
    return create_agent(model, JOB_FIT_SYSTEM_PROMPT, JobAnalysis)


async def run_agent(agent: Any, prompt: str) -> Any:
    """
    Run an agent once and return its output.

    Raises:
        JobFitError: The typed form of any provider or output failure
    """
    try:
        result = await agent.run(prompt)
    except Exception as e:
        mapped = map_inference_error(e)
        logger.warning(f"Model request failed ({type(e).__name__}): {e}")
        raise mapped from e
    return result.output


class AnalysisClient:
    """Runs a single analysis request against the model provider."""

    def __init__(
        self,
        agent: Optional[Any] = None,
        model: Optional[str] = None,
        max_job_description_length: int = DEFAULT_MAX_JOB_DESCRIPTION_LENGTH,
    ) -> None:
        """
        Initialize the AnalysisClient.

        Args:
            agent: Pre-built agent; created from ``model`` on first use otherwise
            model: PydanticAI model name such as "anthropic:claude-sonnet-4-20250514"
            max_job_description_length: Job text beyond this is cut before prompting
        """
        self._agent = agent
        self.model = model
        self.max_job_description_length = max_job_description_length

    @property
    def agent(self) -> Any:
        if self._agent is None:
            if not self.model:
                raise AuthOrPermissionError("No analysis model configured.")
            self._agent = create_analysis_agent(self.model)
        return self._agent

    async def analyze(self, job_text: str, profiles: List[ResumeProfile]) -> JobAnalysis:
        """
        Score a job against the user's resume profiles.

        Args:
            job_text: Captured posting text
            profiles: Resume profiles to compare against

        Returns:
            The validated JobAnalysis

        Raises:
            JobFitError: A typed error for every provider or output failure
        """
        prompt = build_analysis_prompt(job_text, profiles, self.max_job_description_length)
        analysis = await run_agent(self.agent, prompt)

        if not isinstance(analysis, JobAnalysis):
            try:
                analysis = JobAnalysis.model_validate(analysis)
            except ValidationError as e:
                raise MalformedResponseError() from e

        logger.info(f"Analysis complete: score {analysis.compatibility_score}")
        return analysis


# Factory function for creating the client
def create_analysis_client() -> AnalysisClient:
    """Create an AnalysisClient using application settings."""
    from jobfit.config import get_settings

    settings = get_settings()
    return AnalysisClient(
        model=settings.analysis_model,
        max_job_description_length=settings.max_job_description_length,
    )
