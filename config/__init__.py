"""
Configuration Module

This module provides centralized configuration management for search operations:
- Host lists and per-attempt timeouts
- Host-down delay
- Search response cache behavior
- Disjunctive faceting dispatch
- Logging and metrics

Implements a flexible, environment-aware configuration system
with sensible defaults and validation using Pydantic.
"""

from .settings import (
    SearchOpsSettings,
    ConnectionSettings,
    CacheSettings,
    AggregationSettings,
    MonitoringSettings,
    load_settings,
)

__all__ = [
    'SearchOpsSettings',
    'ConnectionSettings',
    'CacheSettings',
    'AggregationSettings',
    'MonitoringSettings',
    'load_settings',
]
