"""Health check and banner router for the migration service."""
from __future__ import annotations

import asyncio
import sqlite3
import time

from fastapi import APIRouter, Request

from src.shared.constants import SERVICE_NAME, SERVICE_TITLE, VERSION
from src.shared.models.common import HealthStatus, ServiceBanner

router = APIRouter(tags=["health"])


@router.get("/api/")
async def root() -> ServiceBanner:
    """Identify the service."""
    return ServiceBanner(message=SERVICE_TITLE, version=VERSION)


@router.get("/api/health")
async def health(request: Request) -> HealthStatus:
    """Health check endpoint returning service status."""

    def _check() -> HealthStatus:
        pool = request.app.state.pool
        start_time = request.app.state.start_time

        db_status = "connected"
        if pool:
            try:
                pool.get().execute("SELECT 1")
            except (sqlite3.Error, OSError):
                db_status = "disconnected"
        else:
            db_status = "disconnected"

        return HealthStatus(
            status="healthy" if db_status == "connected" else "degraded",
            service_name=SERVICE_NAME,
            version=VERSION,
            database=db_status,
            uptime_seconds=time.time() - start_time,
            details={"model": getattr(request.app.state, "model_name", "")},
        )

    return await asyncio.to_thread(_check)
