"""Small device-local key/value entries: request counter, onboarding flag, current view."""

from datetime import date
from typing import Callable, Optional

from jobfit.storage.backends import DurableStore

STATE_COLLECTION = "local_state"

DAILY_USAGE_KEY = "daily_usage"
WELCOME_SEEN_KEY = "welcome_seen"
CURRENT_VIEW_KEY = "current_view"


class LocalState:
    """Key/value entries that are not part of the pipeline's correctness."""

    def __init__(self, store: DurableStore, today: Optional[Callable[[], date]] = None) -> None:
        self.store = store
        self._today = today or date.today

    async def record_request(self) -> int:
        """Count one successful model request for today; returns today's count."""
        today = self._today().isoformat()
        usage = await self.store.get(STATE_COLLECTION, DAILY_USAGE_KEY) or {}
        if usage.get("date") != today:
            usage = {"date": today, "count": 0}
        usage["count"] = int(usage.get("count", 0)) + 1
        await self.store.put(STATE_COLLECTION, DAILY_USAGE_KEY, usage)
        return usage["count"]

    async def requests_today(self) -> int:
        usage = await self.store.get(STATE_COLLECTION, DAILY_USAGE_KEY) or {}
        if usage.get("date") != self._today().isoformat():
            return 0
        return int(usage.get("count", 0))

    async def welcome_seen(self) -> bool:
        entry = await self.store.get(STATE_COLLECTION, WELCOME_SEEN_KEY)
        return bool(entry and entry.get("value"))

    async def mark_welcome_seen(self) -> None:
        await self.store.put(STATE_COLLECTION, WELCOME_SEEN_KEY, {"value": True})

    async def current_view(self, default: str = "home") -> str:
        entry = await self.store.get(STATE_COLLECTION, CURRENT_VIEW_KEY)
        return entry.get("value", default) if entry else default

    async def set_current_view(self, view: str) -> None:
        await self.store.put(STATE_COLLECTION, CURRENT_VIEW_KEY, {"value": view})
