# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# EPOCH: 1 - CLUSTER ORCHESTRATION
# STATUS: Core - Configuration
# PURPOSE: Centralized configuration management
# CREATED: 07 OCT 2026
# ============================================================================
"""
Configuration Module

Typed process settings, constructed once with Settings.from_env().
"""

from core.config.settings import (
    StoreBackend,
    ExecutorBackend,
    LoggingSettings,
    DatabaseSettings,
    StoreSettings,
    ExecutorSettings,
    SchedulerSettings,
    ReaperSettings,
    Settings,
)

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
