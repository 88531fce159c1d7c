"""
Pydantic Settings for Search Operations

This module provides strongly-typed configuration settings using Pydantic,
with support for environment variables and YAML configuration files.
"""

from typing import Dict, Optional, List, Union
from pathlib import Path
import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_yaml import to_yaml_str


class ConnectionSettings(BaseSettings):
    """
    Connection settings for reaching the hosted search service.

    These settings control how the client talks to the service hosts:
    - Which hosts serve read traffic and which serve write traffic
    - Per-attempt connect and read timeouts
    - How long a failed host stays out of rotation
    """
    model_config = SettingsConfigDict(env_prefix="SEARCHOPS_CONNECTION_", case_sensitive=False)

    application_id: str = Field("", description="Application identifier used to derive default host names")
    read_hosts: List[str] = Field(default_factory=list,
                                  description="Ordered hosts for read traffic (search, browse). Derived from application_id if empty")
    write_hosts: List[str] = Field(default_factory=list,
                                   description="Ordered hosts for write traffic. Derived from application_id if empty")
    scheme: str = Field("https", description="URL scheme used to reach the hosts")
    dsn_domain: str = Field("algolia.net",
                            description="Domain of the primary (DSN) host")
    fallback_domain: str = Field("algolianet.com",
                                 description="Domain of the numbered fallback hosts")
    connect_timeout: float = Field(2.0, gt=0, description="Per-attempt connect timeout in seconds")
    read_timeout: float = Field(30.0, gt=0, description="Per-attempt read timeout in seconds")
    search_timeout: float = Field(5.0, gt=0,
                                  description="Per-attempt read timeout in seconds for search requests")
    host_down_delay: float = Field(300.0, ge=0,
                                   description="Seconds a host that failed an attempt is skipped by candidate selection")
    headers: Dict[str, str] = Field(default_factory=dict,
                                    description="Extra headers sent with every request (passed through untouched)")

    @field_validator("scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        if v not in ("http", "https"):
            raise ValueError(f"scheme must be 'http' or 'https', got {v!r}")
        return v


class CacheSettings(BaseSettings):
    """
    Search response cache settings.

    The cache memoizes raw read responses for a bounded time. It is disabled
    by default: results of identical searches are only shared when asked for.
    """
    model_config = SettingsConfigDict(env_prefix="SEARCHOPS_CACHE_", case_sensitive=False)

    enabled: bool = Field(False, description="Whether search responses are cached")
    ttl: float = Field(120.0, gt=0, description="Seconds a cached response stays valid")
    max_size: int = Field(64, gt=0, description="Maximum number of cached responses")


class AggregationSettings(BaseSettings):
    """
    Disjunctive faceting settings.

    - use_batch: submit the N+1 queries as one multi-query request instead of
      N+1 concurrent search requests
    - deadline: default overall deadline for one aggregation, in seconds
    """
    model_config = SettingsConfigDict(env_prefix="SEARCHOPS_AGGREGATION_", case_sensitive=False)

    use_batch: bool = Field(True, description="Submit the aggregation queries as one batched multi-query")
    deadline: Optional[float] = Field(None, gt=0,
                                      description="Default overall deadline in seconds for one aggregation (None = no deadline)")


class MonitoringSettings(BaseSettings):
    """Logging and metrics settings."""
    model_config = SettingsConfigDict(env_prefix="SEARCHOPS_MONITORING_", case_sensitive=False)

    log_level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
    enable_metrics: bool = Field(True, description="Whether aggregation metrics are reported to the metrics callback")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class SearchOpsSettings(BaseSettings):
    """
    Main settings class that consolidates all configuration categories.

    Usage:
        # Load from environment variables and defaults
        settings = SearchOpsSettings()

        # Load from YAML file
        settings = SearchOpsSettings.from_yaml('config.yaml')

        # Access nested settings
        delay = settings.connection.host_down_delay
        ttl = settings.cache.ttl
    """
    model_config = SettingsConfigDict(
        env_prefix="SEARCHOPS_",
        case_sensitive=False,
        env_nested_delimiter="__",
    )

    connection: ConnectionSettings = Field(default_factory=ConnectionSettings,
                                           description="Host and timeout settings")
    cache: CacheSettings = Field(default_factory=CacheSettings,
                                 description="Search response cache settings")
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings,
                                             description="Disjunctive faceting settings")
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings,
                                           description="Logging and metrics settings")

    @classmethod
    def from_yaml(cls, yaml_file: Union[str, Path]) -> "SearchOpsSettings":
        """Load settings from YAML file"""
        import yaml
        with open(yaml_file, 'r') as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self) -> str:
        """Dump settings as a YAML document"""
        return to_yaml_str(self)


def load_settings(config_path: Optional[str] = None) -> SearchOpsSettings:
    """
    Load settings from file and/or environment variables.

    - If config_path is provided and exists, loads settings from the YAML file
    - Otherwise, creates a new settings instance with values from environment variables

    Args:
        config_path: Path to YAML configuration file. If None or file doesn't exist,
                    falls back to environment variables and default values.

    Returns:
        SearchOpsSettings object with loaded configuration
    """
    if config_path and os.path.exists(config_path):
        return SearchOpsSettings.from_yaml(config_path)
    return SearchOpsSettings()
