"""Usage ledger enforcing per-identity analysis quotas."""

import asyncio
import logging
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from jobfit.models.usage import AdmissionDecision, Identity, Tier, UsageRecord, UsageStats
from jobfit.storage.backends import DurableStore

logger = logging.getLogger(__name__)

USAGE_COLLECTION = "usage"
PROFILES_COLLECTION = "profiles"


class UsageLimits(BaseModel):
    """Quota configuration for restricted identities."""

    lifetime_limit: int = 3
    daily_limit: int = 2
    timezone: str = "UTC"


class UsageLedger:
    """
    Tracks lifetime and daily analysis counts per identity.

    Increments for one identity are serialized within this process. Two
    processes sharing a store can still interleave a check and an increment.
    """

    def __init__(
        self,
        store: DurableStore,
        limits: Optional[UsageLimits] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.limits = limits or UsageLimits()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._tz = ZoneInfo(self.limits.timezone)
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def today(self) -> date:
        """Current calendar day in the reference timezone."""
        return self._clock().astimezone(self._tz).date()

    def _roll_window(self, record: UsageRecord) -> UsageRecord:
        """Reset the daily counter once the day has turned over."""
        today = self.today()
        if today > record.daily_window_start:
            return record.model_copy(update={"daily_count": 0, "daily_window_start": today})
        return record

    async def _load(self, identity_id: str) -> UsageRecord:
        """Load an identity's record. A missing record is zeroed but not saved."""
        data = await self.store.get(USAGE_COLLECTION, identity_id)
        if data is None:
            return UsageRecord(identity_id=identity_id, daily_window_start=self.today())
        return self._roll_window(UsageRecord.model_validate(data))

    async def _save(self, record: UsageRecord) -> None:
        await self.store.put(USAGE_COLLECTION, record.identity_id, record.model_dump(mode="json"))

    async def check_admission(self, identity_id: str, in_flight: int = 0) -> AdmissionDecision:
        """
        Check whether a restricted identity may start another analysis.

        Args:
            identity_id: The identity submitting the job
            in_flight: Analyses already admitted for this identity but not finished

        Returns:
            AdmissionDecision; lifetime cap is evaluated before the daily cap
        """
        record = await self._load(identity_id)

        if record.lifetime_count + in_flight >= self.limits.lifetime_limit:
            logger.info(f"Admission denied for {identity_id}: lifetime limit reached")
            return AdmissionDecision(
                allowed=False,
                reason="free_limit_reached",
                limit=self.limits.lifetime_limit,
            )

        if record.daily_count + in_flight >= self.limits.daily_limit:
            logger.info(f"Admission denied for {identity_id}: daily limit reached")
            return AdmissionDecision(
                allowed=False,
                reason="daily_limit_reached",
                limit=self.limits.daily_limit,
            )

        return AdmissionDecision(allowed=True)

    async def increment(self, identity_id: str) -> UsageRecord:
        """
        Count one completed analysis.

        Args:
            identity_id: The identity to charge

        Returns:
            The updated UsageRecord

        Raises:
            PersistenceError: If the record cannot be saved
        """
        async with self._locks[identity_id]:
            record = await self._load(identity_id)
            record = record.model_copy(
                update={
                    "lifetime_count": record.lifetime_count + 1,
                    "daily_count": record.daily_count + 1,
                }
            )
            await self._save(record)

        logger.info(
            f"Usage for {identity_id}: {record.lifetime_count} total, {record.daily_count} today"
        )
        return record

    async def get_stats(self, identity_id: str, tier: Tier = "free") -> UsageStats:
        """Usage summary; unrestricted tiers report no limits."""
        record = await self._load(identity_id)
        restricted = Identity(id=identity_id, tier=tier).is_restricted
        return UsageStats(
            tier=tier,
            total_analyses=record.lifetime_count,
            today_analyses=record.daily_count,
            lifetime_limit=self.limits.lifetime_limit if restricted else None,
            daily_limit=self.limits.daily_limit if restricted else None,
        )

    async def resolve_identity(self, identity_id: str) -> Identity:
        """Look up an identity's tier from its stored profile, defaulting to free."""
        profile = await self.store.get(PROFILES_COLLECTION, identity_id)
        if not profile:
            return Identity(id=identity_id)
        if profile.get("is_admin"):
            return Identity(id=identity_id, tier="admin")
        tier = profile.get("subscription_tier") or "free"
        if tier not in ("free", "pro", "admin"):
            logger.warning(f"Unknown tier {tier!r} for {identity_id}, treating as free")
            tier = "free"
        return Identity(id=identity_id, tier=tier)


def create_usage_ledger(store: DurableStore) -> UsageLedger:
    """Create a UsageLedger using application settings."""
    from jobfit.config import get_settings

    settings = get_settings()
    return UsageLedger(
        store,
        UsageLimits(
            lifetime_limit=settings.free_lifetime_limit,
            daily_limit=settings.free_daily_limit,
            timezone=settings.usage_timezone,
        ),
    )
