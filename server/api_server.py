"""FastAPI application entry point for doc-index-sync.

Exposes the sync trigger endpoints and, optionally, runs a full sync on
startup (SYNC_ON_STARTUP) and then every SYNC_INTERVAL_SECONDS.
"""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from services.doc_index_sync.SyncService import SyncService
from services.doc_index_sync.doc_index_sync import boot_sync_service, shutdown_sync_service
from server.routers.SyncRouter import router as sync_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


async def run_schedule(sync_service: SyncService, run_on_startup: bool, interval_seconds: float) -> None:
    """Run the startup sync and the periodic syncs until cancelled."""
    if run_on_startup:
        await sync_service.do_full_sync()
    if interval_seconds <= 0:
        return
    while True:
        await asyncio.sleep(interval_seconds)
        await sync_service.do_full_sync()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # startup: boot everything before the first request
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    logging.info("Booting clients and sources...")
    sync_service, opened = await boot_sync_service(app.state.helper_config)
    app.state.sync_service = sync_service
    logging.info("Sync service ready for sources: %s", ", ".join(sync_service.get_source_ids()))

    schedule_task = asyncio.create_task(
        run_schedule(
            sync_service,
            run_on_startup=app.state.helper_config.get_bool_val("SYNC_ON_STARTUP", default=False),
            interval_seconds=float(app.state.helper_config.get_number_val("SYNC_INTERVAL_SECONDS", default=0)),
        )
    )

    # serving
    yield

    # shutdown: stop scheduled syncs first, then release clients and the store
    logging.info("Shutting down, closing all clients...")
    schedule_task.cancel()
    await asyncio.gather(schedule_task, return_exceptions=True)
    await shutdown_sync_service(sync_service, opened)
    logging.info("All clients closed.")


app = FastAPI(
    title="doc-index-sync",
    description=(
        "Keeps a vector index in sync with heterogeneous document sources "
        "(PDF, PowerPoint, transcripts, markdown, wiki pages). "
        "Syncs are triggered via POST /sync and POST /sync/source."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sync_router)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting doc-index-sync API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
