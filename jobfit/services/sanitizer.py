"""Startup repair of jobs left pending by an interrupted process."""

import logging
from typing import Iterable, List

from jobfit.models.job import Job

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "Analysis was interrupted. Please submit the job again."


def sanitize_job(job: Job) -> Job:
    """
    Map a job stuck in a pending status to a terminal one.

    An ``analyzing`` job that already captured a result is completed; any
    other pending job lost its background task and is failed. Terminal jobs
    are returned unchanged. A completed job needs its analyzed text, so the
    source value stands in when none was captured.
    """
    if job.is_terminal:
        return job

    if job.status == "analyzing" and job.result is not None:
        captured_text = job.captured_text if job.captured_text is not None else job.source.value
        return job.transition("completed", captured_text=captured_text)

    return job.transition("failed", result=None, error_message=INTERRUPTED_MESSAGE)


def sanitize_jobs(jobs: Iterable[Job]) -> List[Job]:
    """Run once at process start. Pure and idempotent."""
    sanitized: List[Job] = []
    for job in jobs:
        repaired = sanitize_job(job)
        if repaired is not job:
            logger.info(f"Repaired job {job.id}: {job.status} -> {repaired.status}")
        sanitized.append(repaired)
    return sanitized
