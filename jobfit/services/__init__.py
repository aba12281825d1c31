"""Service layer for JobFit."""

from jobfit.services.fetcher import (
    FirecrawlContentFetcher,
    HttpContentFetcher,
    create_content_fetcher,
)
from jobfit.services.inference import AnalysisClient, create_analysis_client
from jobfit.services.job_store import JobStore
from jobfit.services.local_state import LocalState
from jobfit.services.notifications import Notification, NotificationChannel
from jobfit.services.pipeline import JobPipeline, create_job_pipeline
from jobfit.services.profile_store import ProfileStore
from jobfit.services.sanitizer import sanitize_jobs
from jobfit.services.tailoring import TailoringClient, create_tailoring_client
from jobfit.services.usage_ledger import UsageLedger, UsageLimits, create_usage_ledger

__all__ = [
    "FirecrawlContentFetcher",
    "HttpContentFetcher",
    "create_content_fetcher",
    "AnalysisClient",
    "create_analysis_client",
    "JobStore",
    "LocalState",
    "Notification",
    "NotificationChannel",
    "JobPipeline",
    "create_job_pipeline",
    "ProfileStore",
    "sanitize_jobs",
    "TailoringClient",
    "create_tailoring_client",
    "UsageLedger",
    "UsageLimits",
    "create_usage_ledger",
]
