"""Tests for the tailoring client.

Feature: jobfit
Cover letters, critiques, summaries and block rewrites run under the retry
policy and keep hidden blocks out of every prompt.
"""

import random

import pytest
from hypothesis import given, settings, strategies as st
from pydantic_ai.exceptions import ModelHTTPError

from jobfit.models.analysis import JobAnalysis
from jobfit.models.profile import ExperienceBlock, ResumeProfile
from jobfit.services.tailoring import (
    COVER_LETTER_VARIANTS,
    FALLBACK_COVER_LETTER,
    FALLBACK_SUMMARY,
    SUMMARY_JOB_TEXT_LIMIT,
    TailoringClient,
    build_summary_prompt,
    select_recommended_blocks,
)
from jobfit.utils.errors import (
    AuthOrPermissionError,
    DailyQuotaExhaustedError,
    MalformedResponseError,
    RateLimitError,
)

ACME_POSTING = "Senior Backend Engineer @ Acme. Python, PostgreSQL, billing systems."


@pytest.fixture
def profile(sample_profile_data: dict) -> ResumeProfile:
    return ResumeProfile(**sample_profile_data)


class TestCoverLetter:
    @pytest.mark.asyncio
    async def test_prompt_uses_analysis_and_visible_blocks(self, make_tailoring, profile) -> None:
        client = make_tailoring(cover_letter=["  Dear Acme team,\nI build billing APIs.  "])

        letter = await client.generate_cover_letter(
            ACME_POSTING,
            profile,
            ["Rename 'Software Engineer' to 'Backend Engineer'"],
            additional_context="Relocating to Berlin in May",
        )

        assert letter.text == "Dear Acme team,\nI build billing APIs."
        assert letter.prompt_version == "v1_direct"

        prompt = client.agent("cover_letter").prompts[0]
        assert COVER_LETTER_VARIANTS["v1_direct"] in prompt
        assert ACME_POSTING in prompt
        assert "BLOCK_ID: block-acme" in prompt
        assert "Secret stuff" not in prompt
        assert "Rename 'Software Engineer' to 'Backend Engineer'" in prompt
        assert "Relocating to Berlin in May" in prompt
        assert "REVISION INSTRUCTIONS" not in prompt

    @pytest.mark.asyncio
    async def test_revision_feedback_is_included(self, make_tailoring, profile) -> None:
        client = make_tailoring(cover_letter=["Revised letter"])

        await client.generate_cover_letter(
            ACME_POSTING, profile, [], revision_feedback=["Open with the billing migration"]
        )

        prompt = client.agent("cover_letter").prompts[0]
        assert "REVISION INSTRUCTIONS" in prompt
        assert "Open with the billing migration" in prompt

    @pytest.mark.asyncio
    async def test_blank_output_falls_back(self, make_tailoring, profile) -> None:
        client = make_tailoring(cover_letter=["   "])
        letter = await client.generate_cover_letter(ACME_POSTING, profile, [])
        assert letter.text == FALLBACK_COVER_LETTER

    @pytest.mark.asyncio
    async def test_random_variant_comes_from_known_set(self, make_tailoring, profile) -> None:
        client = make_tailoring(cover_letter=["Dear Acme"])
        client.choose_variant = random.choice

        for _ in range(5):
            letter = await client.generate_cover_letter(ACME_POSTING, profile, [])
            assert letter.prompt_version in COVER_LETTER_VARIANTS

    @pytest.mark.asyncio
    async def test_rate_limits_are_retried(self, make_tailoring, profile, no_sleep) -> None:
        client = make_tailoring(
            cover_letter=[ModelHTTPError(429, "claude", {"error": "rate_limit_error"}), "Dear Acme"]
        )

        letter = await client.generate_cover_letter(ACME_POSTING, profile, [])

        assert letter.text == "Dear Acme"
        assert no_sleep == [2.0]
        assert len(client.agent("cover_letter").prompts) == 2

    @pytest.mark.asyncio
    async def test_daily_quota_is_not_retried(self, make_tailoring, profile, no_sleep) -> None:
        client = make_tailoring(
            cover_letter=[ModelHTTPError(429, "claude", {"error": "Quota exceeded PerDay"})]
        )

        with pytest.raises(DailyQuotaExhaustedError):
            await client.generate_cover_letter(ACME_POSTING, profile, [])

        assert no_sleep == []
        assert len(client.agent("cover_letter").prompts) == 1

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_rate_limit(self, make_tailoring, profile, no_sleep) -> None:
        client = make_tailoring(
            max_attempts=2, cover_letter=[ModelHTTPError(429, "claude", "slow down")]
        )

        with pytest.raises(RateLimitError):
            await client.generate_cover_letter(ACME_POSTING, profile, [])

        assert no_sleep == [2.0]

    @pytest.mark.asyncio
    async def test_missing_model_is_an_auth_error(self, profile) -> None:
        client = TailoringClient(model=None)
        with pytest.raises(AuthOrPermissionError):
            await client.generate_cover_letter(ACME_POSTING, profile, [])


class TestCritique:
    @pytest.mark.asyncio
    async def test_dict_output_is_validated(self, make_tailoring) -> None:
        client = make_tailoring(
            critique=[
                {
                    "score": 7,
                    "decision": "maybe",
                    "strengths": ["Specific hook"],
                    "feedback": ["Cut the second paragraph"],
                }
            ]
        )

        critique = await client.critique_cover_letter(ACME_POSTING, "Dear Acme team")

        assert critique.score == 7
        assert critique.decision == "maybe"
        assert "CANDIDATE LETTER:\nDear Acme team" in client.agent("critique").prompts[0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "output",
        [
            {"score": 11, "decision": "interview"},
            {"score": 5, "decision": "hire"},
            "looks great",
        ],
    )
    async def test_out_of_schema_output_is_malformed(self, make_tailoring, output) -> None:
        client = make_tailoring(critique=[output])
        with pytest.raises(MalformedResponseError):
            await client.critique_cover_letter(ACME_POSTING, "Dear Acme team")


class TestSummary:
    @pytest.mark.asyncio
    async def test_summary_and_fallback(self, make_tailoring, profile) -> None:
        client = make_tailoring(summary=["Backend engineer who ships billing systems.", ""])

        assert await client.generate_tailored_summary(ACME_POSTING, [profile]) == (
            "Backend engineer who ships billing systems."
        )
        assert await client.generate_tailored_summary(ACME_POSTING, [profile]) == FALLBACK_SUMMARY

    @settings(max_examples=30, deadline=None)
    @given(job_text=st.text(min_size=1, max_size=SUMMARY_JOB_TEXT_LIMIT + 500))
    def test_summary_job_text_is_truncated(self, job_text: str) -> None:
        prompt = build_summary_prompt(job_text, [])
        assert prompt.startswith(f"TARGET JOB:\n{job_text[:SUMMARY_JOB_TEXT_LIMIT]}\n\n")


class TestBlockTailoring:
    @pytest.mark.asyncio
    async def test_rewritten_bullets_are_returned(self, make_tailoring, profile) -> None:
        client = make_tailoring(tailor_block=[["Built Python billing APIs", "  "]])
        block = profile.blocks[0]

        bullets = await client.tailor_experience_block(block, ACME_POSTING, ["Lead with billing"])

        assert bullets == ["Built Python billing APIs"]
        prompt = client.agent("tailor_block").prompts[0]
        assert "- Cut p99 latency by 40%" in prompt
        assert "Lead with billing" in prompt

    @pytest.mark.asyncio
    async def test_block_without_bullets_makes_no_request(self, make_tailoring) -> None:
        client = make_tailoring(tailor_block=[["unused"]])
        block = ExperienceBlock(id="empty", title="Volunteer")

        assert await client.tailor_experience_block(block, ACME_POSTING, []) == []
        assert client.agent("tailor_block").prompts == []

    @pytest.mark.asyncio
    async def test_empty_answer_keeps_original_bullets(self, make_tailoring, profile) -> None:
        client = make_tailoring(tailor_block=[[]])
        block = profile.blocks[0]
        assert await client.tailor_experience_block(block, ACME_POSTING, []) == block.bullets

    @pytest.mark.asyncio
    async def test_non_list_answer_is_malformed(self, make_tailoring, profile) -> None:
        client = make_tailoring(tailor_block=[{"bullets": "nope"}])
        with pytest.raises(MalformedResponseError):
            await client.tailor_experience_block(profile.blocks[0], ACME_POSTING, [])

    def test_recommended_blocks_skip_hidden_and_unknown(
        self, sample_analysis_data: dict, profile
    ) -> None:
        other = ResumeProfile(
            id="profile-data",
            name="Data",
            blocks=[ExperienceBlock(id="block-etl", title="Data Engineer", bullets=["Airflow"])],
        )
        analysis = JobAnalysis(
            **{
                **sample_analysis_data,
                "recommended_block_ids": ["block-etl", "block-hidden", "made-up", "block-acme"],
            }
        )

        blocks = select_recommended_blocks(analysis, [other, profile])

        assert [b.id for b in blocks] == ["block-etl", "block-acme"]

    @pytest.mark.asyncio
    async def test_tailor_recommended_blocks(
        self, make_tailoring, sample_analysis: JobAnalysis, profile
    ) -> None:
        client = make_tailoring(tailor_block=[["Shipped Python billing APIs for 2M users"]])

        tailored = await client.tailor_recommended_blocks(ACME_POSTING, sample_analysis, [profile])

        assert len(tailored) == 1
        assert tailored[0].block_id == "block-acme"
        assert tailored[0].original_bullets == profile.blocks[0].bullets
        assert tailored[0].tailored_bullets == ["Shipped Python billing APIs for 2M users"]
        prompt = client.agent("tailor_block").prompts[0]
        assert "Rename 'Software Engineer' to 'Backend Engineer'" in prompt
