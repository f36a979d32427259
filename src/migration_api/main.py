"""Migration service FastAPI application."""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.migration_api.storage.project_store import ProjectStore
from src.migration_orchestrator.agents import create_stage_agents
from src.migration_orchestrator.config import load_pipeline_config
from src.migration_orchestrator.model_client import create_model_client
from src.migration_orchestrator.orchestrator import PipelineOrchestrator
from src.shared.config import MigrationServiceConfig
from src.shared.constants import INTERNAL_PORT, SERVICE_NAME, SERVICE_TITLE, VERSION
from src.shared.db.connection import ConnectionPool
from src.shared.db.schema import init_migration_db
from src.shared.errors import register_exception_handlers
from src.shared.logging import TraceIDMiddleware, setup_logging

config = MigrationServiceConfig()
logger = setup_logging(SERVICE_NAME, config.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - initialize and cleanup resources."""
    app.state.start_time = time.time()

    app.state.pool = ConnectionPool(config.database_path)
    init_migration_db(app.state.pool)

    pipeline_config = load_pipeline_config(config.pipeline_config_path or None)
    if config.gemini_model:
        pipeline_config.model.name = config.gemini_model
    app.state.model_name = pipeline_config.model.name

    client = create_model_client(config.gemini_api_key, pipeline_config.model)
    app.state.orchestrator = PipelineOrchestrator(
        ProjectStore(app.state.pool),
        create_stage_agents(client, pipeline_config),
        config=pipeline_config,
        list_limit=config.project_list_limit,
    )

    logger.info(
        "Service started: name=%s version=%s port=%d db=%s model=%s",
        SERVICE_NAME, VERSION, INTERNAL_PORT, config.database_path, app.state.model_name,
    )
    yield

    if app.state.pool:
        app.state.pool.close()
    logger.info("Service stopped: name=%s", SERVICE_NAME)


app = FastAPI(
    title=SERVICE_TITLE,
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(TraceIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origin_list or ["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)
register_exception_handlers(app)

# Register all routers
from src.migration_api.routers.health import router as health_router
from src.migration_api.routers.projects import router as projects_router

app.include_router(health_router)
app.include_router(projects_router)


def run() -> None:
    """Serve the application with uvicorn on the internal port."""
    uvicorn.run(app, host="0.0.0.0", port=INTERNAL_PORT, log_config=None)


if __name__ == "__main__":
    run()
