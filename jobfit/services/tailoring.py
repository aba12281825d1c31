"""
Tailoring helpers built on a completed analysis.

Cover letters, critiques, professional summaries and rewritten experience
blocks. Every model call goes through the same retry policy as analysis.
"""

import logging
import random
from typing import Any, Callable, Dict, List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError

from jobfit.models.analysis import JobAnalysis
from jobfit.models.profile import ExperienceBlock, ResumeProfile
from jobfit.models.tailoring import CoverLetter, CoverLetterCritique, TailoredBlock
from jobfit.services.inference import (
    DEFAULT_MAX_JOB_DESCRIPTION_LENGTH,
    build_resume_context,
    create_agent,
    run_agent,
)
from jobfit.utils.errors import AuthOrPermissionError, MalformedResponseError
from jobfit.utils.retry import RetryCallback, execute_with_retry

logger = logging.getLogger(__name__)

FALLBACK_COVER_LETTER = "Could not generate cover letter."
FALLBACK_SUMMARY = "Experienced professional with relevant skills."

# Job text sent with the shorter tailoring prompts
BLOCK_JOB_TEXT_LIMIT = 3000
SUMMARY_JOB_TEXT_LIMIT = 5000
CRITIQUE_JOB_TEXT_LIMIT = 5000

COVER_LETTER_VARIANTS = {
    "v1_direct": (
        "Write a professional cover letter in three parts: an opening that names the "
        "role and the single strongest reason for the fit, one or two achievements "
        "tied to the hardest requirements, and a short confident close."
    ),
    "v2_storytelling": (
        "Write a cover letter that opens with the problem the company is solving, "
        "connects it to a similar challenge from the candidate's experience, and "
        "ends with what the candidate wants to bring to the team."
    ),
    "v3_strategic": (
        "Write a concise, senior-level cover letter framed around the value the "
        "candidate would deliver rather than a list of skills."
    ),
}

COVER_LETTER_SYSTEM_PROMPT = """
You are an expert copywriter writing cover letters for job applications.
Use only experience the candidate actually has. Sound human, not templated.
Return the letter text only.
"""

SUMMARY_SYSTEM_PROMPT = """
You are an expert resume writer. Write a two to three sentence professional
summary pitching the candidate for the target job, using its keywords.
Return the summary text only, without a heading.
"""

CRITIQUE_SYSTEM_PROMPT = """
You are a strict technical hiring manager reviewing a cover letter.
Decide whether you would interview the candidate from the letter alone,
score it from 0 to 10, and list three strengths and three concrete improvements.
"""

TAILOR_BLOCK_SYSTEM_PROMPT = """
You are an expert resume writer. Rewrite the bullets of one experience entry
for the target job: use its keywords, shift the focus to the skills it needs,
quantify impact where the original supports it, and never add bullets.
Return the rewritten bullets as a list of strings.
"""

AGENT_SPECS: Dict[str, tuple] = {
    "cover_letter": (COVER_LETTER_SYSTEM_PROMPT, str),
    "summary": (SUMMARY_SYSTEM_PROMPT, str),
    "critique": (CRITIQUE_SYSTEM_PROMPT, CoverLetterCritique),
    "tailor_block": (TAILOR_BLOCK_SYSTEM_PROMPT, List[str]),
}

_bullets_adapter = TypeAdapter(List[str])


def format_block(block: ExperienceBlock) -> str:
    bullets = "\n".join(f"- {bullet}" for bullet in block.bullets)
    return f"Title: {block.title}\nCompany: {block.organization}\nOriginal Bullets:\n{bullets}"


def build_cover_letter_prompt(
    variant: str,
    job_text: str,
    profile: ResumeProfile,
    tailoring_instructions: Sequence[str],
    additional_context: Optional[str] = None,
    revision_feedback: Optional[Sequence[str]] = None,
) -> str:
    """Assemble the cover letter request for one prompt variant."""
    parts = [
        COVER_LETTER_VARIANTS[variant],
        f"JOB DESCRIPTION:\n{job_text}",
        f"MY EXPERIENCE:\n{build_resume_context([profile])}",
        "STRATEGY:\n" + "\n".join(tailoring_instructions),
    ]
    if additional_context:
        parts.append(
            f"MY ADDITIONAL CONTEXT (Important):\n{additional_context}\n"
            "Include this context naturally if relevant to the job requirements."
        )
    if revision_feedback:
        parts.append(
            "REVISION INSTRUCTIONS:\nA hiring manager reviewed the previous draft. "
            "Fix these specific issues:\n" + "\n".join(revision_feedback)
        )
    return "\n\n".join(parts)


def build_summary_prompt(job_text: str, profiles: List[ResumeProfile]) -> str:
    return (
        f"TARGET JOB:\n{job_text[:SUMMARY_JOB_TEXT_LIMIT]}\n\n"
        f"MY BACKGROUND:\n{build_resume_context(profiles)}"
    )


def build_critique_prompt(job_text: str, cover_letter: str) -> str:
    return f"JOB:\n{job_text[:CRITIQUE_JOB_TEXT_LIMIT]}\n\nCANDIDATE LETTER:\n{cover_letter}"


def build_tailor_block_prompt(
    block: ExperienceBlock, job_text: str, instructions: Sequence[str]
) -> str:
    return (
        f"TARGET JOB:\n{job_text[:BLOCK_JOB_TEXT_LIMIT]}\n\n"
        f"MY EXPERIENCE BLOCK:\n{format_block(block)}\n\n"
        "TAILORING INSTRUCTIONS (Strategy):\n" + "\n".join(instructions)
    )


def select_recommended_blocks(
    analysis: JobAnalysis, profiles: List[ResumeProfile]
) -> List[ExperienceBlock]:
    """
    Find the visible blocks an analysis recommended, in recommendation order.

    The best-fit profile is searched first; ids the model made up or that
    point at hidden blocks are skipped.
    """
    ordered = sorted(profiles, key=lambda p: p.id != analysis.best_resume_profile_id)
    visible: Dict[str, ExperienceBlock] = {}
    for profile in ordered:
        for block in profile.visible_blocks:
            visible.setdefault(block.id, block)

    blocks = []
    for block_id in analysis.recommended_block_ids:
        block = visible.get(block_id)
        if block is None:
            logger.warning(f"Recommended block {block_id} not found among visible blocks")
            continue
        blocks.append(block)
    return blocks


class TailoringClient:
    """Generates application material for a job from its analysis."""

    def __init__(
        self,
        model: Optional[str] = None,
        agents: Optional[Dict[str, Any]] = None,
        max_attempts: int = 3,
        base_delay_ms: int = 2000,
        max_job_description_length: int = DEFAULT_MAX_JOB_DESCRIPTION_LENGTH,
        choose_variant: Callable[[Sequence[str]], str] = random.choice,
    ) -> None:
        """
        Initialize the TailoringClient.

        Args:
            model: PydanticAI model name used for every tailoring agent
            agents: Pre-built agents by task name; missing ones are created from ``model``
            max_attempts: Retry attempts per model request
            base_delay_ms: First backoff delay, doubled on each retry
            max_job_description_length: Job text beyond this is cut from cover letter prompts
            choose_variant: Picks the cover letter prompt variant
        """
        self.model = model
        self._agents: Dict[str, Any] = dict(agents or {})
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.max_job_description_length = max_job_description_length
        self.choose_variant = choose_variant

    def agent(self, name: str) -> Any:
        if name not in self._agents:
            if not self.model:
                raise AuthOrPermissionError("No analysis model configured.")
            system_prompt, output_type = AGENT_SPECS[name]
            self._agents[name] = create_agent(self.model, system_prompt, output_type)
        return self._agents[name]

    async def _request(
        self, name: str, prompt: str, on_retry: Optional[RetryCallback] = None
    ) -> Any:
        return await execute_with_retry(
            lambda: run_agent(self.agent(name), prompt),
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            on_retry=on_retry,
        )

    async def generate_cover_letter(
        self,
        job_text: str,
        profile: ResumeProfile,
        tailoring_instructions: Sequence[str],
        additional_context: Optional[str] = None,
        revision_feedback: Optional[Sequence[str]] = None,
        on_retry: Optional[RetryCallback] = None,
    ) -> CoverLetter:
        """
        Write a cover letter for the job using one randomly chosen prompt variant.

        Args:
            job_text: Captured posting text
            profile: The resume profile the analysis picked
            tailoring_instructions: Instructions from the analysis
            additional_context: Extra facts the user wants mentioned
            revision_feedback: Critique feedback to address in a revised draft
            on_retry: Retry progress callback

        Returns:
            The letter and the prompt variant used
        """
        version = self.choose_variant(sorted(COVER_LETTER_VARIANTS))
        prompt = build_cover_letter_prompt(
            version,
            job_text[: self.max_job_description_length],
            profile,
            tailoring_instructions,
            additional_context,
            revision_feedback,
        )
        text = await self._request("cover_letter", prompt, on_retry)
        text = str(text or "").strip() or FALLBACK_COVER_LETTER
        logger.info(f"Generated cover letter with prompt {version} ({len(text)} chars)")
        return CoverLetter(text=text, prompt_version=version)

    async def generate_tailored_summary(
        self,
        job_text: str,
        profiles: List[ResumeProfile],
        on_retry: Optional[RetryCallback] = None,
    ) -> str:
        """Write a short professional summary aimed at the job."""
        text = await self._request("summary", build_summary_prompt(job_text, profiles), on_retry)
        return str(text or "").strip() or FALLBACK_SUMMARY

    async def critique_cover_letter(
        self,
        job_text: str,
        cover_letter: str,
        on_retry: Optional[RetryCallback] = None,
    ) -> CoverLetterCritique:
        """
        Review a cover letter the way a hiring manager would.

        Raises:
            MalformedResponseError: If the model's verdict does not fit the schema
        """
        output = await self._request(
            "critique", build_critique_prompt(job_text, cover_letter), on_retry
        )
        if isinstance(output, CoverLetterCritique):
            return output
        try:
            return CoverLetterCritique.model_validate(output)
        except ValidationError as e:
            raise MalformedResponseError() from e

    async def tailor_experience_block(
        self,
        block: ExperienceBlock,
        job_text: str,
        instructions: Sequence[str],
        on_retry: Optional[RetryCallback] = None,
    ) -> List[str]:
        """
        Rewrite one block's bullets for the job.

        A block without bullets has nothing to rewrite and makes no request.
        An empty answer keeps the original bullets.
        """
        if not block.bullets:
            return []

        output = await self._request(
            "tailor_block", build_tailor_block_prompt(block, job_text, instructions), on_retry
        )
        try:
            bullets = _bullets_adapter.validate_python(output or [])
        except ValidationError as e:
            raise MalformedResponseError() from e

        bullets = [bullet for bullet in bullets if bullet.strip()]
        return bullets or list(block.bullets)

    async def tailor_recommended_blocks(
        self,
        job_text: str,
        analysis: JobAnalysis,
        profiles: List[ResumeProfile],
        on_retry: Optional[RetryCallback] = None,
    ) -> List[TailoredBlock]:
        """Rewrite every block the analysis recommended, one request per block."""
        tailored = []
        for block in select_recommended_blocks(analysis, profiles):
            bullets = await self.tailor_experience_block(
                block, job_text, analysis.tailoring_instructions, on_retry
            )
            tailored.append(
                TailoredBlock(
                    block_id=block.id,
                    title=block.title,
                    original_bullets=list(block.bullets),
                    tailored_bullets=bullets,
                )
            )
        return tailored


# Factory function for creating the client
def create_tailoring_client() -> TailoringClient:
    """Create a TailoringClient using application settings."""
    from jobfit.config import get_settings

    settings = get_settings()
    return TailoringClient(
        model=settings.analysis_model,
        max_attempts=settings.max_retry_attempts,
        base_delay_ms=settings.base_delay_ms,
        max_job_description_length=settings.max_job_description_length,
    )
