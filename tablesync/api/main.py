import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from ..config.global_config_loader import GlobalConfig, load_global_config
from ..sync.orchestrator_factory import create_orchestrator_from_config
from ..sync.sync_orchestrator import SyncOrchestrator
from .routers import sync


def create_app(orchestrator: Optional[SyncOrchestrator] = None,
               global_config: Optional[GlobalConfig] = None) -> FastAPI:
    """
    Create the API application.

    The orchestrator is owned by the app; when none is passed it is built from
    the global configuration at startup.
    """
    global_config = global_config or GlobalConfig.default()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logging.info("Starting table sync API")
        if getattr(app.state, "orchestrator", None) is None:
            app.state.orchestrator = create_orchestrator_from_config(global_config)

        yield

        logging.info("Shutting down table sync API")
        current = app.state.orchestrator
        if current.is_running:
            await current.stop()
            await current.wait_until_idle()
        await current.close()

    app = FastAPI(
        title="Table Sync API",
        description="Start, stop and monitor master to test table synchronization",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.status_log_limit = global_config.api.status_log_limit
    app.include_router(sync.router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "tablesync-api",
            "version": "1.0.0"
        }

    return app


def run_server(global_config: Optional[GlobalConfig] = None) -> None:
    """Run the API server with uvicorn"""
    global_config = global_config or load_global_config()
    app = create_app(global_config=global_config)
    uvicorn.run(app, host=global_config.api.host, port=global_config.api.port)
