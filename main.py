# ============================================================================
# CLUSTER ORCHESTRATOR - MAIN APPLICATION
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - FastAPI application entry point
# PURPOSE: Wire settings, store, executors, worker and reaper into one app
# CREATED: 11 OCT 2026
# ============================================================================
"""
Cluster Orchestrator Main Application

FastAPI application that:
1. Provides HTTP API for cluster management
2. Runs cluster workflows in background worker tasks
3. Runs the expiry reaper

Usage:
    uvicorn main:app --host 0.0.0.0 --port 8000
"""

import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from __version__ import __version__, BUILD_DATE, EPOCH
from api.routes import router, set_services
from core.config import ExecutorBackend, ExecutorSettings, Settings, StoreBackend
from core.logging import ComponentType, configure_logging, get_logger
from core.schema import PydanticToSQL
from infrastructure import FakeExecutor, TerraformExecutor
from orchestrator import ExpiryReaper
from repositories import ClusterRepository, InMemoryClusterRepository, create_pool
from services import ClusterService
from worker import ClusterWorkflowRunner, ExecutorFactory, QueueScheduler

settings = Settings.from_env()
configure_logging(settings.logging)
logger = get_logger(__name__, ComponentType.SERVICE)


def build_executor_factory(executor_settings: ExecutorSettings) -> ExecutorFactory:
    """One fresh executor per workflow."""
    if executor_settings.backend == ExecutorBackend.FAKE:
        return FakeExecutor

    def factory() -> TerraformExecutor:
        return TerraformExecutor(
            binary=executor_settings.terraform_binary,
            work_root=executor_settings.work_root,
        )

    return factory


async def bootstrap_schema(pool) -> None:
    """Apply the idempotent DDL for the cluster table."""
    statements = PydanticToSQL().generate_all()
    async with pool.connection() as conn:
        for stmt in statements:
            await conn.execute(stmt)
    logger.info(f"Schema bootstrap completed ({len(statements)} statements)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Starts components bottom-up on startup, stops them top-down on shutdown.
    """
    logger.info(f"Starting Cluster Orchestrator v{__version__} (Epoch {EPOCH}, Build {BUILD_DATE})")

    pool = None
    if settings.store.backend == StoreBackend.POSTGRES:
        pool = await create_pool(settings.database)
        if settings.database.auto_bootstrap_schema:
            await bootstrap_schema(pool)
        store = ClusterRepository(pool)
    else:
        logger.warning("Using in-memory cluster store; state is lost on restart")
        store = InMemoryClusterRepository()

    runner = ClusterWorkflowRunner(store, build_executor_factory(settings.executor))
    scheduler = QueueScheduler(
        runner.run,
        max_concurrent=settings.scheduler.max_concurrent,
        shutdown_grace_sec=settings.scheduler.shutdown_grace_sec,
    )
    await scheduler.start()

    cluster_service = ClusterService(
        store,
        scheduler,
        default_timeout=settings.executor.default_cluster_timeout,
    )

    reaper: Optional[ExpiryReaper] = None
    if settings.reaper.enabled:
        reaper = ExpiryReaper(store, cluster_service, interval_sec=settings.reaper.interval_sec)
        await reaper.start()
        logger.info("Expiry reaper started")

    set_services(cluster_service, scheduler=scheduler, reaper=reaper)
    logger.info(
        f"Cluster Orchestrator ready (store={settings.store.backend.value}, "
        f"executor={settings.executor.backend.value})"
    )

    yield

    # Shutdown
    logger.info("Shutting down Cluster Orchestrator...")

    if reaper is not None:
        await reaper.stop()
    await scheduler.stop()
    if pool is not None:
        await pool.close()

    logger.info("Cluster Orchestrator stopped")


# Create FastAPI app
app = FastAPI(
    title="Cluster Orchestrator",
    description=f"Epoch {EPOCH} asynchronous cluster provisioning",
    version=__version__,
    lifespan=lifespan,
)

# Include API routes
app.include_router(router, prefix="/api/v1")


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Cluster Orchestrator",
        "version": __version__,
        "epoch": EPOCH,
        "build_date": BUILD_DATE,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/livez")
async def livez():
    """Liveness probe."""
    return {"status": "ok"}


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=os.environ.get("RELOAD", "false").lower() == "true",
    )
