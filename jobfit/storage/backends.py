"""Durable key-value store backends: local JSON files and Supabase tables."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from jobfit.utils.errors import PersistenceError

logger = logging.getLogger(__name__)

Record = dict[str, Any]


class DurableStore(Protocol):
    """Collections of JSON records keyed by id."""

    async def get(self, collection: str, key: str) -> Optional[Record]:
        """Return the record stored under ``key`` or None."""

    async def put(self, collection: str, key: str, value: Record) -> None:
        """Insert or replace the record stored under ``key``."""

    async def delete(self, collection: str, key: str) -> bool:
        """Remove ``key``; return True if something was removed."""

    async def list(self, collection: str) -> list[Record]:
        """Return every record in the collection."""


class JsonFileStore:
    """Device-local store keeping one JSON file per collection."""

    def __init__(self, data_dir: str = "data") -> None:
        self.data_dir = Path(data_dir)
        self._collections: dict[str, dict[str, Record]] = {}

    def _path(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _load(self, collection: str) -> dict[str, Record]:
        """Load a collection from disk, caching it in memory."""
        if collection in self._collections:
            return self._collections[collection]

        records: dict[str, Record] = {}
        path = self._path(collection)
        if path.exists():
            try:
                with open(path, "r") as f:
                    data = json.load(f)
                    records = dict(data.get("records", {}))
            except (OSError, ValueError) as e:
                logger.error(f"Failed to load {path}, starting empty: {e}")
                records = {}

        self._collections[collection] = records
        return records

    def _save(self, collection: str) -> None:
        """Write a collection to disk."""
        data = {
            "records": self._collections.get(collection, {}),
            "last_updated": datetime.now(timezone.utc).isoformat(),
        }
        path = self._path(collection)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            with open(tmp_path, "w") as f:
                json.dump(data, f, indent=2)
            tmp_path.replace(path)
        except OSError as e:
            raise PersistenceError(f"Failed to write {collection}: {e}")

    async def get(self, collection: str, key: str) -> Optional[Record]:
        record = self._load(collection).get(key)
        return dict(record) if record is not None else None

    async def put(self, collection: str, key: str, value: Record) -> None:
        self._load(collection)[key] = dict(value)
        self._save(collection)

    async def delete(self, collection: str, key: str) -> bool:
        records = self._load(collection)
        if key not in records:
            return False
        del records[key]
        self._save(collection)
        return True

    async def list(self, collection: str) -> list[Record]:
        return [dict(record) for record in self._load(collection).values()]


class SupabaseStore:
    """Account-scoped remote store backed by one Supabase table per collection."""

    def __init__(self, supabase_client: Any) -> None:
        """
        Initialize the SupabaseStore.

        Args:
            supabase_client: Supabase client instance
        """
        self.supabase = supabase_client

    async def get(self, collection: str, key: str) -> Optional[Record]:
        try:
            result = self.supabase.table(collection).select("*").eq("id", key).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to read {collection}/{key}: {e}")

        if not result.data:
            return None
        return result.data[0]["payload"]

    async def put(self, collection: str, key: str, value: Record) -> None:
        row = {
            "id": key,
            "payload": value,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            result = self.supabase.table(collection).upsert(row).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to write {collection}/{key}: {e}")

        if not result.data:
            raise PersistenceError(f"Failed to write {collection}/{key}: empty response")

    async def delete(self, collection: str, key: str) -> bool:
        try:
            result = self.supabase.table(collection).delete().eq("id", key).execute()
        except Exception as e:
            raise PersistenceError(f"Failed to delete {collection}/{key}: {e}")
        return bool(result.data)

    async def list(self, collection: str) -> list[Record]:
        try:
            result = self.supabase.table(collection).select("*").execute()
        except Exception as e:
            raise PersistenceError(f"Failed to list {collection}: {e}")
        return [row["payload"] for row in result.data or []]


class SyncedStore:
    """
    Local-first store that mirrors writes to a remote store.

    Reads are served locally. Remote writes are best-effort: a failure is
    logged and the next write of the same key carries the latest state.
    """

    def __init__(self, local: DurableStore, remote: DurableStore) -> None:
        self.local = local
        self.remote = remote

    async def get(self, collection: str, key: str) -> Optional[Record]:
        return await self.local.get(collection, key)

    async def put(self, collection: str, key: str, value: Record) -> None:
        await self.local.put(collection, key, value)
        try:
            await self.remote.put(collection, key, value)
        except PersistenceError as e:
            logger.warning(f"Remote sync failed for {collection}/{key}: {e}")

    async def delete(self, collection: str, key: str) -> bool:
        removed = await self.local.delete(collection, key)
        try:
            await self.remote.delete(collection, key)
        except PersistenceError as e:
            logger.warning(f"Remote delete failed for {collection}/{key}: {e}")
        return removed

    async def list(self, collection: str) -> list[Record]:
        return await self.local.list(collection)

    async def pull(self, collection: str, skip: Iterable[str] = ()) -> int:
        """
        Copy remote records missing locally.

        Args:
            collection: Collection to pull
            skip: Keys never to copy, such as records deleted locally

        Returns:
            The number of records copied
        """
        local_records = await self.local.list(collection)
        known = {record.get("id") for record in local_records} | set(skip)
        copied = 0
        for record in await self.remote.list(collection):
            key = record.get("id")
            if key and key not in known:
                await self.local.put(collection, key, record)
                copied += 1
        if copied:
            logger.info(f"Pulled {copied} {collection} records from remote")
        return copied


def create_supabase_client() -> Any:
    """Create a Supabase client from application settings."""
    from supabase import create_client

    from jobfit.config import get_settings

    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_key)


# Factory function for creating the configured store
def create_durable_store() -> DurableStore:
    """
    Create the DurableStore selected by ``Settings.storage_backend``.

    Returns:
        Configured DurableStore instance
    """
    from jobfit.config import get_settings

    settings = get_settings()
    if settings.storage_backend == "supabase":
        return SupabaseStore(create_supabase_client())
    if settings.storage_backend == "synced":
        return SyncedStore(
            local=JsonFileStore(settings.data_dir),
            remote=SupabaseStore(create_supabase_client()),
        )
    return JsonFileStore(settings.data_dir)
