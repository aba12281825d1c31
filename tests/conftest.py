"""Pytest fixtures for JobFit tests."""

from types import SimpleNamespace
from typing import Any, List, Optional

import pytest

from jobfit.models.analysis import JobAnalysis
from jobfit.models.profile import ResumeProfile
from jobfit.storage.backends import JsonFileStore
from jobfit.utils.errors import PersistenceError


class FlakyStore(JsonFileStore):
    """JsonFileStore whose writes can be made to fail per collection."""

    def __init__(self, data_dir: str) -> None:
        super().__init__(data_dir)
        self.failing_collections: set = set()
        self.puts: List[tuple] = []

    async def put(self, collection: str, key: str, value: dict) -> None:
        if collection in self.failing_collections:
            raise PersistenceError(f"Simulated write failure for {collection}/{key}")
        self.puts.append((collection, key, value.get("status")))
        await super().put(collection, key, value)


class FakeFetcher:
    """Content fetcher returning canned text or raising."""

    def __init__(self, text: str = "", error: Optional[Exception] = None) -> None:
        self.text = text
        self.error = error
        self.calls: List[str] = []

    async def fetch_job_content(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.text


class FakeAnalysisClient:
    """Analysis client that plays back a script of errors and results."""

    def __init__(self, outcomes: List[Any]) -> None:
        self.outcomes = list(outcomes)
        self.calls: List[str] = []

    async def analyze(self, job_text: str, profiles: List[ResumeProfile]) -> JobAnalysis:
        self.calls.append(job_text)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


class ScriptedAgent:
    """PydanticAI agent stand-in playing back outputs and errors in order."""

    def __init__(self, outcomes: List[Any]) -> None:
        self.outcomes = list(outcomes)
        self.prompts: List[str] = []

    async def run(self, prompt: str):
        self.prompts.append(prompt)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return SimpleNamespace(output=outcome)


@pytest.fixture
def sample_analysis_data() -> dict:
    """Sample analysis result data for testing."""
    return {
        "compatibility_score": 82,
        "best_resume_profile_id": "profile-backend",
        "reasoning": "Strong backend match, light on Kubernetes.",
        "strengths": ["Python services at scale", "PostgreSQL tuning"],
        "weaknesses": ["No Kubernetes experience"],
        "tailoring_instructions": ["Rename 'Software Engineer' to 'Backend Engineer'"],
        "recommended_block_ids": ["block-acme"],
        "distilled_job": {
            "company_name": "Acme",
            "role_title": "Senior Backend Engineer",
            "key_skills": ["Python", "PostgreSQL"],
            "core_responsibilities": ["Own the billing service"],
        },
    }


@pytest.fixture
def sample_analysis(sample_analysis_data: dict) -> JobAnalysis:
    return JobAnalysis(**sample_analysis_data)


@pytest.fixture
def sample_profile_data() -> dict:
    """Sample resume profile data for testing."""
    return {
        "id": "profile-backend",
        "name": "Backend",
        "blocks": [
            {
                "id": "block-acme",
                "type": "work",
                "title": "Software Engineer",
                "organization": "Acme Corp",
                "date_range": "2020-2024",
                "bullets": ["Built billing APIs in Python", "Cut p99 latency by 40%"],
            },
            {
                "id": "block-hidden",
                "type": "project",
                "title": "Side project",
                "bullets": ["Secret stuff"],
                "is_visible": False,
            },
        ],
    }


@pytest.fixture
def json_store(tmp_path) -> JsonFileStore:
    return JsonFileStore(str(tmp_path / "data"))


@pytest.fixture
def flaky_store(tmp_path) -> FlakyStore:
    return FlakyStore(str(tmp_path / "data"))


@pytest.fixture
def make_pipeline(json_store: JsonFileStore):
    """Factory building a JobPipeline around fakes and a real file store."""
    from jobfit.services.job_store import JobStore
    from jobfit.services.notifications import NotificationChannel
    from jobfit.services.pipeline import JobPipeline
    from jobfit.services.profile_store import ProfileStore
    from jobfit.services.usage_ledger import UsageLedger, UsageLimits

    def _make(
        outcomes: Optional[List[Any]] = None,
        fetch_text: str = "",
        fetch_error: Optional[Exception] = None,
        store: Optional[JsonFileStore] = None,
        limits: Optional[UsageLimits] = None,
        max_attempts: int = 3,
        base_delay_ms: int = 2000,
        local_state: Optional[Any] = None,
    ) -> JobPipeline:
        store = store or json_store
        return JobPipeline(
            job_store=JobStore(store),
            ledger=UsageLedger(store, limits=limits),
            fetcher=FakeFetcher(text=fetch_text, error=fetch_error),
            analysis_client=FakeAnalysisClient(outcomes or []),
            profile_store=ProfileStore(store),
            notifier=NotificationChannel(),
            max_attempts=max_attempts,
            base_delay_ms=base_delay_ms,
            local_state=local_state,
        )

    return _make


@pytest.fixture
def no_sleep(monkeypatch) -> List[float]:
    """Replace the retry backoff sleep; returns the recorded delays in seconds."""
    delays: List[float] = []

    async def mock_sleep(delay: float) -> None:
        delays.append(delay)

    monkeypatch.setattr("jobfit.utils.retry.asyncio.sleep", mock_sleep)
    return delays


@pytest.fixture
def make_tailoring():
    """Factory building a TailoringClient around scripted agents."""
    from jobfit.services.tailoring import TailoringClient

    def _make(max_attempts: int = 3, **outcomes: List[Any]) -> TailoringClient:
        agents = {name: ScriptedAgent(script) for name, script in outcomes.items()}
        return TailoringClient(
            agents=agents,
            max_attempts=max_attempts,
            choose_variant=lambda versions: versions[0],
        )

    return _make
