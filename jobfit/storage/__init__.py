"""Durable storage backends for JobFit."""

from jobfit.storage.backends import (
    DurableStore,
    JsonFileStore,
    SupabaseStore,
    SyncedStore,
    create_durable_store,
)

__all__ = [
    "DurableStore",
    "JsonFileStore",
    "SupabaseStore",
    "SyncedStore",
    "create_durable_store",
]
