# ============================================================================
# REPOSITORIES MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Persistence layer
# PURPOSE: ClusterStore port and its PostgreSQL and in-memory variants
# CREATED: 08 OCT 2026
# ============================================================================
"""
Repositories Module

Provides cluster persistence.
Uses psycopg3 async with connection pooling in production.

Usage:
    from repositories import ClusterRepository, create_pool

    pool = await create_pool(settings.database)
    store = ClusterRepository(pool)
    cluster = await store.get_cluster(cluster_id, request_id)
"""

from .cluster_store import ClusterStore
from .cluster_repo import ClusterRepository
from .memory_repo import InMemoryClusterRepository
from .database import create_pool

__all__ = [
    "ClusterStore",
    "ClusterRepository",
    "InMemoryClusterRepository",
    "create_pool",
]
