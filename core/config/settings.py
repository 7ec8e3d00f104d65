# ============================================================================
# CONFIGURATION SETTINGS
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Process configuration
# PURPOSE: Typed settings for logging, storage, executor, scheduler, reaper
# CREATED: 07 OCT 2026
# ============================================================================
"""
Configuration Settings

Settings are read from the environment once, in main.py, and passed down
to the components that need them. Nothing here is a module-level global.

Design:
- Immutable dataclasses
- Environment variable overrides via from_env()
- Type-safe access
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class StoreBackend(str, Enum):
    """Cluster store implementations."""
    POSTGRES = "postgres"
    MEMORY = "memory"


class ExecutorBackend(str, Enum):
    """Infrastructure executor implementations."""
    TERRAFORM = "terraform"
    FAKE = "fake"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class LoggingSettings:
    """Log level and output format."""
    level: str = "INFO"
    json_output: bool = False
    include_source: bool = True

    @classmethod
    def from_env(cls) -> "LoggingSettings":
        """Create from environment variables."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            json_output=os.getenv("LOG_FORMAT", "").lower() == "json",
            include_source=_env_bool("LOG_INCLUDE_SOURCE", True),
        )


@dataclass(frozen=True)
class DatabaseSettings:
    """
    PostgreSQL connection settings.

    DATABASE_URL wins over the individual POSTGRES_* components.
    """
    url: Optional[str] = None
    host: str = "localhost"
    port: int = 5432
    name: str = "postgres"
    user: str = "postgres"
    password: str = ""
    sslmode: str = "require"
    min_pool_size: int = 2
    max_pool_size: int = 10
    auto_bootstrap_schema: bool = False

    @property
    def connection_string(self) -> str:
        if self.url:
            return self.url
        return (
            f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}"
            f"/{self.name}?sslmode={self.sslmode}"
        )

    @classmethod
    def from_env(cls) -> "DatabaseSettings":
        """Create from environment variables."""
        return cls(
            url=os.getenv("DATABASE_URL") or None,
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", 5432)),
            name=os.getenv("POSTGRES_DB", "postgres"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", ""),
            sslmode=os.getenv("POSTGRES_SSLMODE", "require"),
            min_pool_size=int(os.getenv("DB_POOL_MIN_SIZE", 2)),
            max_pool_size=int(os.getenv("DB_POOL_MAX_SIZE", 10)),
            auto_bootstrap_schema=_env_bool("AUTO_BOOTSTRAP_SCHEMA", False),
        )


@dataclass(frozen=True)
class StoreSettings:
    """Which cluster store backs the service."""
    backend: StoreBackend = StoreBackend.POSTGRES

    @classmethod
    def from_env(cls) -> "StoreSettings":
        """Create from environment variables."""
        return cls(backend=StoreBackend(os.getenv("STORE_BACKEND", "postgres").lower()))


@dataclass(frozen=True)
class ExecutorSettings:
    """
    Infrastructure executor settings.

    default_cluster_timeout applies when a request does not carry one.
    """
    backend: ExecutorBackend = ExecutorBackend.TERRAFORM
    terraform_binary: str = "terraform"
    work_root: Optional[str] = None  # None = system temp dir
    default_cluster_timeout: str = "1h"

    @classmethod
    def from_env(cls) -> "ExecutorSettings":
        """Create from environment variables."""
        return cls(
            backend=ExecutorBackend(os.getenv("EXECUTOR_BACKEND", "terraform").lower()),
            terraform_binary=os.getenv("TERRAFORM_BINARY", "terraform"),
            work_root=os.getenv("TERRAFORM_WORK_ROOT") or None,
            default_cluster_timeout=os.getenv("DEFAULT_CLUSTER_TIMEOUT", "1h"),
        )


@dataclass(frozen=True)
class SchedulerSettings:
    """Workflow scheduler settings."""
    max_concurrent: int = 4
    shutdown_grace_sec: float = 30.0

    @classmethod
    def from_env(cls) -> "SchedulerSettings":
        """Create from environment variables."""
        return cls(
            max_concurrent=int(os.getenv("SCHEDULER_MAX_CONCURRENT", 4)),
            shutdown_grace_sec=float(os.getenv("SCHEDULER_SHUTDOWN_GRACE_SEC", 30)),
        )


@dataclass(frozen=True)
class ReaperSettings:
    """Expiry reaper settings."""
    enabled: bool = True
    interval_sec: float = 60.0

    @classmethod
    def from_env(cls) -> "ReaperSettings":
        """Create from environment variables."""
        return cls(
            enabled=_env_bool("REAPER_ENABLED", True),
            interval_sec=float(os.getenv("REAPER_INTERVAL_SEC", 60)),
        )


@dataclass(frozen=True)
class Settings:
    """Container for all process settings."""
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    store: StoreSettings = field(default_factory=StoreSettings)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    reaper: ReaperSettings = field(default_factory=ReaperSettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create all settings from environment variables."""
        return cls(
            logging=LoggingSettings.from_env(),
            database=DatabaseSettings.from_env(),
            store=StoreSettings.from_env(),
            executor=ExecutorSettings.from_env(),
            scheduler=SchedulerSettings.from_env(),
            reaper=ReaperSettings.from_env(),
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "StoreBackend",
    "ExecutorBackend",
    "LoggingSettings",
    "DatabaseSettings",
    "StoreSettings",
    "ExecutorSettings",
    "SchedulerSettings",
    "ReaperSettings",
    "Settings",
]
