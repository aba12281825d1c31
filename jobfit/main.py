"""JobFit API application."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobfit.api.routes import register_exception_handlers, router
from jobfit.config import get_settings
from jobfit.services.local_state import LocalState
from jobfit.services.pipeline import JobPipeline, create_job_pipeline
from jobfit.services.tailoring import TailoringClient, create_tailoring_client
from jobfit.storage.backends import create_durable_store

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    pipeline: Optional[JobPipeline] = None,
    local_state: Optional[LocalState] = None,
    tailoring: Optional[TailoringClient] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        pipeline: Pre-built pipeline; one is created from settings at startup otherwise
        local_state: Device-local state sharing the pipeline's store
        tailoring: Tailoring client; one is created from settings at startup otherwise

    Returns:
        Configured FastAPI app
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if pipeline is None:
            store = create_durable_store()
            app.state.pipeline = create_job_pipeline(store)
        else:
            app.state.pipeline = pipeline
        app.state.local_state = (
            local_state
            or app.state.pipeline.local_state
            or LocalState(app.state.pipeline.job_store.store)
        )
        app.state.tailoring = tailoring or create_tailoring_client()

        # Repair jobs interrupted by the previous process before serving
        await app.state.pipeline.load()
        logger.info("JobFit API ready")
        yield
        logger.info(f"Shutting down with {app.state.pipeline.running} analyses running")

    app = FastAPI(title="JobFit API", lifespan=lifespan)
    app.include_router(router)
    register_exception_handlers(app)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    return app


def main() -> None:
    configure_logging()
    uvicorn.run("jobfit.main:app", host="0.0.0.0", port=3000)


app = create_app()

if __name__ == "__main__":
    main()
