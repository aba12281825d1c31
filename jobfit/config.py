"""Application settings from environment variables."""

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

# Load environment variables
load_dotenv()


class Settings(BaseSettings):
    """Application settings from environment."""

    # API Keys
    anthropic_api_key: str = ""
    firecrawl_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Storage
    storage_backend: Literal["local", "supabase", "synced"] = "local"
    data_dir: str = "data"

    # Configuration
    log_level: str = "INFO"
    max_retry_attempts: int = 3
    base_delay_ms: int = 2000

    # Analysis
    analysis_model: str = "anthropic:claude-sonnet-4-20250514"
    max_job_description_length: int = 15000

    # Content fetching
    min_content_length: int = 50
    fetch_timeout_seconds: float = 30.0

    # Usage limits for the free tier
    free_lifetime_limit: int = 3
    free_daily_limit: int = 2
    usage_timezone: str = "UTC"

    model_config = {"env_file": ".env"}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
