"""Property-based tests for the startup sanitizer.

Feature: jobfit
No pending status survives startup; sanitizing twice equals sanitizing once.
"""

from hypothesis import given, settings, strategies as st

from jobfit.models.analysis import JobAnalysis
from jobfit.models.job import Job, JobSource
from jobfit.services.sanitizer import INTERRUPTED_MESSAGE, sanitize_job, sanitize_jobs

non_empty_text = st.text(min_size=1, max_size=60).filter(lambda x: x.strip())

analyses = st.builds(
    JobAnalysis,
    compatibility_score=st.integers(min_value=0, max_value=100),
    best_resume_profile_id=st.just("profile-1"),
    strengths=st.lists(non_empty_text, max_size=3),
    weaknesses=st.lists(non_empty_text, max_size=3),
    tailoring_instructions=st.lists(non_empty_text, max_size=3),
)


@st.composite
def persisted_jobs(draw) -> Job:
    """Any job a previous process could have left in the store."""
    source = draw(st.builds(JobSource.text, non_empty_text))
    status = draw(st.sampled_from(["queued_created", "analyzing", "completed", "failed"]))
    captured = draw(st.one_of(st.none(), non_empty_text))

    if status == "completed":
        return Job(source=source, status=status, result=draw(analyses), captured_text=captured or "text")
    if status == "failed":
        return Job(source=source, status=status, error_message="boom")
    return Job(
        source=source,
        status=status,
        captured_text=captured,
        result=draw(st.one_of(st.none(), analyses)),
    )


class TestSanitizer:
    @settings(max_examples=100)
    @given(jobs=st.lists(persisted_jobs(), max_size=10))
    def test_no_pending_status_survives(self, jobs) -> None:
        for job in sanitize_jobs(jobs):
            assert job.status in ("completed", "failed")
            if job.status == "completed":
                assert job.result is not None
            else:
                assert job.result is None

    @settings(max_examples=100)
    @given(jobs=st.lists(persisted_jobs(), max_size=10))
    def test_idempotent(self, jobs) -> None:
        once = sanitize_jobs(jobs)
        assert sanitize_jobs(once) == once

    @settings(max_examples=100)
    @given(jobs=st.lists(persisted_jobs(), max_size=10))
    def test_terminal_jobs_untouched_and_order_kept(self, jobs) -> None:
        sanitized = sanitize_jobs(jobs)
        assert [j.id for j in sanitized] == [j.id for j in jobs]
        for before, after in zip(jobs, sanitized):
            if before.is_terminal:
                assert after is before

    def test_analyzing_with_result_is_completed(self, sample_analysis) -> None:
        job = Job(
            source=JobSource.text("Senior Backend Engineer @ Acme"),
            status="analyzing",
            captured_text="Senior Backend Engineer @ Acme",
            result=sample_analysis,
        )
        repaired = sanitize_job(job)
        assert repaired.status == "completed"
        assert repaired.result == sample_analysis

    def test_analyzing_without_result_is_failed(self) -> None:
        job = Job(source=JobSource.url("https://example.com/jobs/9"), status="analyzing")
        repaired = sanitize_job(job)
        assert repaired.status == "failed"
        assert repaired.error_message == INTERRUPTED_MESSAGE

    def test_result_without_captured_text_uses_source(self, sample_analysis) -> None:
        job = Job(source=JobSource.text("pasted text"), status="analyzing", result=sample_analysis)
        assert sanitize_job(job).captured_text == "pasted text"
