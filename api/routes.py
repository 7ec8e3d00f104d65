# ============================================================================
# API ROUTES
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - FastAPI route definitions
# PURPOSE: HTTP endpoints for cluster management
# CREATED: 10 OCT 2026
# ============================================================================
"""
API Routes

FastAPI routes for the cluster orchestrator. Every endpoint accepts an
optional X-Request-ID header; a fresh id is generated when it is missing.

Error mapping:
    InvalidRequestError                 -> 400
    ClusterNotFoundError                -> 404
    ClusterAlreadyDestroyedError        -> 409
    WorkflowInProgressError             -> 409
    PersistenceError / scheduler down   -> 503
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Header, HTTPException

from core.errors import (
    ClusterAlreadyDestroyedError,
    ClusterError,
    ClusterNotFoundError,
    InvalidRequestError,
    PersistenceError,
    WorkflowInProgressError,
)
from core.logging import ComponentType, get_logger
from core.models import RequestContext
from worker.scheduler import SchedulerStoppedError
from .schemas import (
    ClusterCreate,
    ClusterListResponse,
    ClusterResponse,
    ErrorResponse,
)

logger = get_logger(__name__, ComponentType.API)

router = APIRouter()


# ============================================================================
# DEPENDENCY INJECTION
# ============================================================================
# These will be set by the main app at startup

_cluster_service = None
_scheduler = None
_reaper = None


def set_services(cluster_service, scheduler=None, reaper=None):
    """Set service instances for dependency injection."""
    global _cluster_service, _scheduler, _reaper
    _cluster_service = cluster_service
    _scheduler = scheduler
    _reaper = reaper


def get_cluster_service():
    if _cluster_service is None:
        raise HTTPException(500, "Services not initialized")
    return _cluster_service


def _request_id(header_value: Optional[str]) -> str:
    return header_value or str(uuid.uuid4())


def _to_http(error: Exception) -> HTTPException:
    if isinstance(error, InvalidRequestError):
        return HTTPException(400, str(error))
    if isinstance(error, ClusterNotFoundError):
        return HTTPException(404, str(error))
    if isinstance(error, (ClusterAlreadyDestroyedError, WorkflowInProgressError)):
        return HTTPException(409, str(error))
    if isinstance(error, (PersistenceError, SchedulerStoppedError)):
        return HTTPException(503, str(error))
    return HTTPException(500, str(error))


_ERRORS = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Cluster not found"},
    409: {"model": ErrorResponse, "description": "Conflicting cluster state"},
    503: {"model": ErrorResponse, "description": "Store or worker unavailable"},
}


# ============================================================================
# ORCHESTRATOR STATUS
# ============================================================================

@router.get("/orchestrator/status", tags=["Orchestrator"])
async def get_orchestrator_status():
    """
    Scheduler and reaper statistics.
    """
    scheduler_stats = _scheduler.stats if _scheduler is not None else None
    reaper_stats = _reaper.stats if _reaper is not None else None

    running = bool(scheduler_stats and scheduler_stats.get("running", True))
    return {
        "status": "running" if running else "stopped",
        "scheduler": scheduler_stats,
        "reaper": reaper_stats,
    }


# ============================================================================
# CLUSTERS
# ============================================================================

@router.post(
    "/clusters",
    response_model=ClusterResponse,
    status_code=202,
    tags=["Clusters"],
    responses={k: v for k, v in _ERRORS.items() if k != 404},
)
async def create_cluster(
    request: ClusterCreate,
    x_request_id: Optional[str] = Header(None),
):
    """
    Create a cluster.

    Returns immediately with the cluster in `provisioning` status.
    Poll GET /clusters/{id} to monitor progress.
    """
    service = get_cluster_service()
    ctx = RequestContext(
        terraform_config=request.config_bytes(),
        timeout=request.timeout,
        project=request.project,
        region=request.region,
        name=request.name,
        request_id=_request_id(x_request_id),
    )

    try:
        cluster = await service.create_cluster(ctx)
    except (ClusterError, SchedulerStoppedError) as e:
        raise _to_http(e) from e

    logger.info(f"Accepted cluster {cluster.id} ({cluster.name})")
    return ClusterResponse.from_cluster(cluster)


@router.get("/clusters", response_model=ClusterListResponse, tags=["Clusters"])
async def list_clusters(x_request_id: Optional[str] = Header(None)):
    """List all clusters, oldest first."""
    service = get_cluster_service()

    try:
        clusters = await service.get_clusters(_request_id(x_request_id))
    except ClusterError as e:
        raise _to_http(e) from e

    return ClusterListResponse(
        clusters=[ClusterResponse.from_cluster(c) for c in clusters],
        total=len(clusters),
    )


@router.get(
    "/clusters/{cluster_id}",
    response_model=ClusterResponse,
    tags=["Clusters"],
    responses={404: _ERRORS[404], 503: _ERRORS[503]},
)
async def get_cluster(cluster_id: str, x_request_id: Optional[str] = Header(None)):
    """Get one cluster."""
    service = get_cluster_service()

    try:
        cluster = await service.get_cluster(_request_id(x_request_id), cluster_id)
    except ClusterError as e:
        raise _to_http(e) from e

    return ClusterResponse.from_cluster(cluster)


@router.delete(
    "/clusters/{cluster_id}",
    response_model=ClusterResponse,
    status_code=202,
    tags=["Clusters"],
    responses={k: v for k, v in _ERRORS.items() if k != 400},
)
async def delete_cluster(cluster_id: str, x_request_id: Optional[str] = Header(None)):
    """
    Destroy a cluster.

    Returns immediately with the cluster in `destroying` status.
    """
    service = get_cluster_service()

    try:
        cluster = await service.delete_cluster(_request_id(x_request_id), cluster_id)
    except (ClusterError, SchedulerStoppedError) as e:
        raise _to_http(e) from e

    logger.info(f"Destruction accepted for cluster {cluster_id}")
    return ClusterResponse.from_cluster(cluster)
