"""Storage for the user's resume profiles."""

import logging
from typing import List

from pydantic import ValidationError

from jobfit.models.profile import ResumeProfile
from jobfit.storage.backends import DurableStore

logger = logging.getLogger(__name__)

RESUMES_COLLECTION = "resumes"


class ProfileStore:
    """CRUD for ResumeProfile records."""

    def __init__(self, store: DurableStore) -> None:
        self.store = store

    async def list(self) -> List[ResumeProfile]:
        profiles: List[ResumeProfile] = []
        for record in await self.store.list(RESUMES_COLLECTION):
            try:
                profiles.append(ResumeProfile.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable profile {record.get('id')}: {e}")
        return profiles

    async def save(self, profile: ResumeProfile) -> str:
        await self.store.put(RESUMES_COLLECTION, profile.id, profile.model_dump(mode="json"))
        logger.info(f"Saved profile {profile.id} ({len(profile.blocks)} blocks)")
        return profile.id

    async def delete(self, profile_id: str) -> bool:
        return await self.store.delete(RESUMES_COLLECTION, profile_id)
