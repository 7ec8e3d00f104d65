# ============================================================================
# DATABASE CONNECTION POOL
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Async PostgreSQL connection management
# PURPOSE: Provide connection pooling for psycopg3 async
# CREATED: 08 OCT 2026
# ============================================================================
"""
Database Connection Pool

Manages async PostgreSQL connections using psycopg3 and psycopg_pool.
The pool is owned by main.py's lifespan and handed to ClusterRepository;
there is no module-level pool.

Usage:
    pool = await create_pool(settings.database)
    store = ClusterRepository(pool)
"""

import logging

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from core.config.settings import DatabaseSettings

logger = logging.getLogger(__name__)


def _safe_conninfo(conninfo: str) -> str:
    """Strip credentials for logging."""
    if "@" in conninfo:
        return conninfo.split("@")[-1]
    if "password=" in conninfo:
        return conninfo.split("password=")[0] + "password=***"
    return conninfo


async def create_pool(settings: DatabaseSettings) -> AsyncConnectionPool:
    """
    Open a connection pool for the configured database.

    Returns:
        Opened AsyncConnectionPool
    """
    conninfo = settings.connection_string
    logger.info(f"Initializing connection pool: {_safe_conninfo(conninfo)}")

    pool = AsyncConnectionPool(
        conninfo=conninfo,
        min_size=settings.min_pool_size,
        max_size=settings.max_pool_size,
        open=False,
    )
    await pool.open()
    logger.info(
        f"Connection pool opened (min={settings.min_pool_size}, max={settings.max_pool_size})"
    )
    return pool


# ============================================================================
# SCHEMA CONSTANTS
# ============================================================================

SCHEMA = "clusterapp"

# Table identifiers - use with sql.SQL().format() for injection-safe queries
TABLE_CLUSTERS = sql.Identifier(SCHEMA, "clusters")
