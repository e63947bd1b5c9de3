"""FastAPI application for the Redirection database upgrader."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
import uvicorn

from redirection.utils.logging import setup_logger
from redirection.services.option_store import OptionStore
from redirection.services.database_status import DatabaseStatus
from redirection.models.state import Running
from redirection.api.routes import router

PORT = 12316


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown hooks.

    Startup:
    - Initialize logger
    - Create required directories (./data/, ./logs/)
    - Report any upgrade run left behind by a previous process

    Shutdown:
    - Log shutdown message
    """
    logger = setup_logger("redirection", "./logs/redirection.log", level=logging.INFO)
    logger.info("Redirection upgrader starting up...")

    for directory in ["./data", "./logs"]:
        Path(directory).mkdir(parents=True, exist_ok=True)
        logger.debug(f"Ensured directory exists: {directory}")

    status = DatabaseStatus(OptionStore())
    state = status.get_state()
    if isinstance(state, Running):
        # The record is the source of truth; the next upgrade request resumes it
        logger.warning(
            f"Found interrupted database {state.mode.value}: "
            f"stage={state.stage}, {state.complete}% complete"
        )
    elif status.needs_installing():
        logger.info("Database not installed")
    elif status.needs_updating():
        logger.info(
            f"Database needs updating: {status.get_stored_version()} -> {status.target_version}"
        )
    else:
        logger.info(f"Database up to date at {status.get_stored_version()}")

    logger.info(f"Redirection upgrader ready on port {PORT}")

    yield

    logger.info("Redirection upgrader shutting down...")


app = FastAPI(
    title="Redirection Database Upgrader",
    description="Stage-by-stage schema upgrades for the Redirection plugin",
    version="2.4.0",
    lifespan=lifespan,
)

app.include_router(router)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "redirection-upgrader", "version": "2.4.0"}


def main():
    """Main entry point for running the server."""
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=PORT,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
