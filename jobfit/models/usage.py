"""Usage tracking Pydantic models."""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field

Tier = Literal["free", "pro", "admin"]
AdmissionReason = Literal["free_limit_reached", "daily_limit_reached"]

UNRESTRICTED_TIERS: frozenset[str] = frozenset({"pro", "admin"})


class Identity(BaseModel):
    """The user a job is submitted on behalf of."""

    id: str = Field(min_length=1)
    tier: Tier = "free"

    @property
    def is_restricted(self) -> bool:
        return self.tier not in UNRESTRICTED_TIERS


class UsageRecord(BaseModel):
    """Per-identity analysis counters."""

    identity_id: str = Field(min_length=1)
    lifetime_count: int = Field(default=0, ge=0)
    daily_count: int = Field(default=0, ge=0)
    daily_window_start: date


class AdmissionDecision(BaseModel):
    """Result of the quota check performed before a job may start."""

    allowed: bool
    reason: Optional[AdmissionReason] = None
    limit: Optional[int] = None


class UsageStats(BaseModel):
    """Usage summary for display."""

    tier: Tier
    total_analyses: int
    today_analyses: int
    lifetime_limit: Optional[int] = None
    daily_limit: Optional[int] = None
