"""
Job pipeline orchestrator.

Admits submissions against the usage ledger, persists each job, and drives
it to a terminal status in a detached asyncio task.
"""

import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional, Set, Union

from jobfit.models.job import Job, JobSource
from jobfit.models.usage import AdmissionDecision, Identity
from jobfit.services.fetcher import ContentFetcher
from jobfit.services.inference import AnalysisClient
from jobfit.services.job_store import JobStore
from jobfit.services.local_state import LocalState
from jobfit.services.notifications import NotificationChannel
from jobfit.services.profile_store import ProfileStore
from jobfit.services.sanitizer import sanitize_jobs
from jobfit.services.usage_ledger import UsageLedger
from jobfit.storage.backends import DurableStore
from jobfit.utils.errors import (
    ContentUnavailableError,
    JobFitError,
    PersistenceError,
    to_user_error,
)
from jobfit.utils.retry import RetryAttempt, execute_with_retry

logger = logging.getLogger(__name__)


class JobPipeline:
    """
    Runs submitted jobs from ``queued_created`` to ``completed`` or ``failed``.

    Every transition is written to the JobStore before the in-memory
    projection is updated. A failed write is reported as a warning and the
    projection keeps the attempted state.
    """

    def __init__(
        self,
        job_store: JobStore,
        ledger: UsageLedger,
        fetcher: ContentFetcher,
        analysis_client: AnalysisClient,
        profile_store: ProfileStore,
        notifier: Optional[NotificationChannel] = None,
        max_attempts: int = 3,
        base_delay_ms: int = 2000,
        local_state: Optional[LocalState] = None,
    ) -> None:
        """
        Initialize the JobPipeline.

        Args:
            job_store: Durable store for job records
            ledger: Usage ledger consulted before admission and charged on success
            fetcher: Resolves URL sources to text
            analysis_client: Runs the model request
            profile_store: Source of the resume profiles to compare against
            notifier: Channel for user-visible messages
            max_attempts: Retry attempts for the analysis request
            base_delay_ms: First backoff delay, doubled on each retry
            local_state: Device-local counter of successful model requests
        """
        self.job_store = job_store
        self.ledger = ledger
        self.fetcher = fetcher
        self.analysis_client = analysis_client
        self.profile_store = profile_store
        self.notifier = notifier or NotificationChannel()
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.local_state = local_state

        self._jobs: Dict[str, Job] = {}
        self._tasks: Set[asyncio.Task] = set()
        self._in_flight: Counter = Counter()
        self._admission_lock = asyncio.Lock()

    async def load(self) -> List[Job]:
        """
        Load persisted jobs and repair any left pending by a previous process.

        Call once at startup, before accepting submissions.
        """
        try:
            await self.job_store.pull_remote()
        except PersistenceError as e:
            logger.warning(f"Could not pull jobs from remote: {e}")

        stored = await self.job_store.list()
        sanitized = sanitize_jobs(stored)

        for before, after in zip(stored, sanitized):
            if after is not before:
                await self._write(after)

        self._jobs = {job.id: job for job in sanitized}
        logger.info(f"Loaded {len(self._jobs)} jobs")
        return self.jobs

    @property
    def jobs(self) -> List[Job]:
        """Projection of all known jobs, newest first."""
        return sorted(self._jobs.values(), key=lambda j: j.created_at, reverse=True)

    @property
    def running(self) -> int:
        """Number of background analyses not yet settled."""
        return len(self._tasks)

    def get(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    async def submit(
        self,
        source: JobSource,
        identity: Optional[Identity] = None,
    ) -> Union[Job, AdmissionDecision]:
        """
        Admit, persist and start analyzing a job.

        The quota check runs before anything is written or scheduled, so a
        denied submission leaves no trace.

        Args:
            source: Posting URL or pasted text
            identity: Submitting user; anonymous submissions are not metered

        Returns:
            The new Job in ``queued_created``, or the denying AdmissionDecision

        Raises:
            PersistenceError: If the new job cannot be stored
        """
        metered = identity is not None and identity.is_restricted

        async with self._admission_lock:
            if metered:
                decision = await self.ledger.check_admission(
                    identity.id, in_flight=self._in_flight[identity.id]
                )
                if not decision.allowed:
                    return decision

            job = Job(
                source=source,
                captured_text=source.value if source.kind == "text" else None,
                identity_id=identity.id if identity else None,
            )
            await self.job_store.add(job)
            if metered:
                self._in_flight[identity.id] += 1

        self._jobs[job.id] = job
        task = asyncio.create_task(self._run(job, metered))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return job

    async def delete(self, job_id: str) -> bool:
        """Delete a job. An analysis still running for it finishes unseen."""
        self._jobs.pop(job_id, None)
        try:
            return await self.job_store.delete(job_id)
        except PersistenceError as e:
            logger.error(f"Failed to delete job {job_id}: {e}")
            self.notifier.warning(e.user_message, job_id)
            return False

    async def join(self) -> None:
        """Wait for every running background task to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(self, job: Job, metered: bool) -> None:
        """Background task driving one job to a terminal status."""
        try:
            job = job.transition("analyzing")
            await self._persist(job)

            if job.source.kind == "url":
                try:
                    text = await self.fetcher.fetch_job_content(job.source.value)
                except ContentUnavailableError as e:
                    await self._fail(job, e)
                    return
                job = job.transition("analyzing", captured_text=text)
                await self._persist(job)

            profiles = await self.profile_store.list()

            def on_retry(message: str, attempt: RetryAttempt) -> None:
                self.notifier.info(message, job.id)

            try:
                analysis = await execute_with_retry(
                    lambda: self.analysis_client.analyze(job.captured_text, profiles),
                    max_attempts=self.max_attempts,
                    base_delay_ms=self.base_delay_ms,
                    on_retry=on_retry,
                )
            except JobFitError as e:
                await self._fail(job, e)
                return

            job = job.transition("completed", result=analysis, error_message=None)
            await self._persist(job)
            self.notifier.success(
                f"Analysis complete: {analysis.compatibility_score}% match", job.id
            )

            await self._record_usage(job, metered)

        except Exception as e:
            logger.exception(f"Unexpected error processing job {job.id}")
            if not job.is_terminal:
                await self._fail(job, to_user_error(e))
        finally:
            if metered:
                self._in_flight[job.identity_id] -= 1
                if self._in_flight[job.identity_id] <= 0:
                    del self._in_flight[job.identity_id]

    async def _record_usage(self, job: Job, metered: bool) -> None:
        """Count a completed analysis. Bookkeeping failures never undo the result."""
        counters = []
        if metered:
            counters.append(lambda: self.ledger.increment(job.identity_id))
        if self.local_state is not None:
            counters.append(self.local_state.record_request)

        for record in counters:
            try:
                await record()
            except PersistenceError as e:
                logger.error(f"Failed to record usage for job {job.id}: {e}")
                self.notifier.warning(e.user_message, job.id)

    async def _fail(self, job: Job, error: JobFitError) -> None:
        failed = job.transition("failed", result=None, error_message=error.user_message)
        await self._persist(failed)
        self.notifier.error(error.user_message, job.id)
        logger.info(f"Job {job.id} failed: {type(error).__name__}")

    async def _persist(self, job: Job) -> None:
        """Write then project. The projection only tracks jobs not deleted."""
        await self._write(job)
        if job.id in self._jobs:
            self._jobs[job.id] = job

    async def _write(self, job: Job) -> bool:
        try:
            return await self.job_store.update(job)
        except PersistenceError as e:
            logger.error(f"Failed to persist job {job.id} as {job.status}: {e}")
            self.notifier.warning(e.user_message, job.id)
            return False


# Factory function for creating the pipeline
def create_job_pipeline(
    store: Optional[DurableStore] = None,
    notifier: Optional[NotificationChannel] = None,
) -> JobPipeline:
    """
    Create a JobPipeline wired from application settings.

    Args:
        store: Backend to use; the configured one when omitted
        notifier: Channel for user-visible messages

    Returns:
        Configured JobPipeline instance
    """
    from jobfit.config import get_settings
    from jobfit.services.fetcher import create_content_fetcher
    from jobfit.services.inference import create_analysis_client
    from jobfit.services.usage_ledger import create_usage_ledger
    from jobfit.storage.backends import create_durable_store

    settings = get_settings()
    store = store or create_durable_store()

    return JobPipeline(
        job_store=JobStore(store),
        ledger=create_usage_ledger(store),
        fetcher=create_content_fetcher(),
        analysis_client=create_analysis_client(),
        profile_store=ProfileStore(store),
        notifier=notifier,
        max_attempts=settings.max_retry_attempts,
        base_delay_ms=settings.base_delay_ms,
        local_state=LocalState(store),
    )
