"""Durable job store built on a key-value DurableStore."""

import logging
from typing import List, Optional, Set

from pydantic import ValidationError

from jobfit.models.job import Job, utc_now
from jobfit.storage.backends import DurableStore, SyncedStore

logger = logging.getLogger(__name__)

JOBS_COLLECTION = "jobs"
TOMBSTONES_COLLECTION = "job_tombstones"


class JobStore:
    """Persists Job entities keyed by id; the source of truth across reloads."""

    def __init__(self, store: DurableStore) -> None:
        """
        Initialize the JobStore.

        Args:
            store: Backend holding the jobs and tombstones collections
        """
        self.store = store

    async def add(self, job: Job) -> str:
        """
        Persist a new job.

        Args:
            job: Job to persist

        Returns:
            The id of the stored job

        Raises:
            PersistenceError: If the write fails
        """
        await self.store.put(JOBS_COLLECTION, job.id, job.model_dump(mode="json"))
        logger.info(f"Created job {job.id} ({job.source.kind})")
        return job.id

    async def update(self, job: Job) -> bool:
        """
        Upsert a job by id. A missing id is inserted.

        Jobs the user deleted are left deleted, so a late write from a
        background task cannot bring them back.

        Args:
            job: Job with updated data

        Returns:
            True if the job was written, False if it was tombstoned

        Raises:
            PersistenceError: If the write fails
        """
        if await self.is_deleted(job.id):
            logger.info(f"Skipping write for deleted job {job.id} ({job.status})")
            return False

        await self.store.put(JOBS_COLLECTION, job.id, job.model_dump(mode="json"))
        logger.debug(f"Saved job {job.id} as {job.status}")
        return True

    async def delete(self, job_id: str) -> bool:
        """
        Delete a job and leave a tombstone for it.

        Args:
            job_id: The job ID to delete

        Returns:
            True if a stored job was removed
        """
        await self.store.put(
            TOMBSTONES_COLLECTION,
            job_id,
            {"id": job_id, "deleted_at": utc_now().isoformat()},
        )
        removed = await self.store.delete(JOBS_COLLECTION, job_id)
        logger.info(f"Deleted job {job_id}")
        return removed

    async def is_deleted(self, job_id: str) -> bool:
        """Check whether the user deleted this job."""
        return await self.store.get(TOMBSTONES_COLLECTION, job_id) is not None

    async def deleted_ids(self) -> Set[str]:
        records = await self.store.list(TOMBSTONES_COLLECTION)
        return {record["id"] for record in records if record.get("id")}

    async def pull_remote(self) -> int:
        """
        Copy jobs known only to the remote mirror into the local store.

        Tombstones are pulled first, and jobs deleted on either side stay
        deleted even if the remote delete never went through.

        Returns:
            The number of jobs copied

        Raises:
            PersistenceError: If the remote cannot be read
        """
        if not isinstance(self.store, SyncedStore):
            return 0
        await self.store.pull(TOMBSTONES_COLLECTION)
        return await self.store.pull(JOBS_COLLECTION, skip=await self.deleted_ids())

    async def get(self, job_id: str) -> Optional[Job]:
        """
        Retrieve a job by ID.

        Args:
            job_id: The job ID to retrieve

        Returns:
            Job if found, readable and not deleted, None otherwise
        """
        record = await self.store.get(JOBS_COLLECTION, job_id)
        if record is None or await self.is_deleted(job_id):
            return None
        return self._parse(record)

    async def list(self) -> List[Job]:
        """
        List all jobs, newest first.

        Returns:
            Jobs ordered by created_at descending, excluding deleted ones
        """
        deleted = await self.deleted_ids()
        jobs: List[Job] = []
        for record in await self.store.list(JOBS_COLLECTION):
            if record.get("id") in deleted:
                continue
            job = self._parse(record)
            if job:
                jobs.append(job)

        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return jobs

    def _parse(self, record: dict) -> Optional[Job]:
        try:
            return Job.model_validate(record)
        except ValidationError as e:
            logger.warning(f"Skipping unreadable job record {record.get('id')}: {e}")
            return None
