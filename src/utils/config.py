"""
Configuration management for the WooCommerce graph source.

Uses Pydantic Settings for type-safe configuration with YAML file support
and environment variable overrides.
"""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from src.errors import ConfigurationError


class ApiKeys(BaseModel):
    """Consumer credential pair issued by the WooCommerce store."""
    consumer_key: str = ""
    consumer_secret: str = ""


class SiteConfig(BaseModel):
    """One remote store."""
    api: str
    https: bool = Field(default=True)
    api_keys: ApiKeys = Field(default_factory=ApiKeys)
    site_name: str = Field(default="")
    api_version: str = Field(default="wc/v3")

    model_config = {"frozen": True}

    @property
    def scheme(self) -> str:
        return "https" if self.https else "http"


class TransportConfig(BaseModel):
    """Low-level transport options, handed to httpx as-is."""
    wp_api_prefix: str = Field(default="wp-json")
    query_string_auth: bool = Field(default=False)
    port: Optional[int] = None
    encoding: Optional[str] = None
    proxy: Optional[str] = None
    timeout: float = Field(default=30.0, gt=0)
    http_config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Extra keyword arguments for httpx.AsyncClient"
    )


class MediaConfig(BaseModel):
    """Media download and cache settings."""
    enabled: bool = Field(default=True)
    cache_path: Optional[Path] = Field(default=Path("./outputs/media_cache.json"))
    timeout: float = Field(default=60.0, gt=0)


class StoreConfig(BaseModel):
    """Which storage runtime receives the finished nodes."""
    backend: Literal["memory", "surreal"] = Field(default="memory")


class SurrealConfig(BaseModel):
    """SurrealDB connection configuration."""
    host: str = Field(default="localhost")
    port: int = Field(default=8000)
    namespace: str = Field(default="woocommerce")
    database: str = Field(default="graph")
    username: str = Field(default="root")
    password: str = Field(default="root")

    @property
    def url(self) -> str:
        """Get the WebSocket URL for SurrealDB."""
        return f"ws://{self.host}:{self.port}/rpc"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO")
    console: bool = Field(default=True)
    file: bool = Field(default=True)
    log_dir: Path = Field(default=Path("./outputs/logs"))


class PipelineConfig(BaseSettings):
    """
    Main run configuration.

    Configuration is loaded from:
    1. Default values
    2. YAML config file (if provided)
    3. Environment variables (prefix: WCGRAPH_)
    """
    name: str = Field(default="woocommerce_graph_source")
    version: str = Field(default="1.0.0")

    sites: List[SiteConfig] = Field(default_factory=list)
    fields: List[str] = Field(default_factory=list)
    per_page: Optional[int] = Field(default=None, ge=1, le=100)
    verbose: bool = Field(default=True)

    transport: TransportConfig = Field(default_factory=TransportConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    surreal: SurrealConfig = Field(default_factory=SurrealConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    report_path: Optional[Path] = Field(default=Path("./outputs/ingestion_report.md"))

    class Config:
        env_prefix = "WCGRAPH_"
        env_nested_delimiter = "__"


def load_config(config_path: Optional[Path] = None) -> PipelineConfig:
    """
    Load run configuration from a YAML file.

    Args:
        config_path: Path to YAML config file. If None, uses defaults.

    Returns:
        PipelineConfig instance with loaded settings.

    Raises:
        ConfigurationError: If the file holds values that fail validation.
    """
    if config_path is None:
        default_path = Path("config/pipeline_config.yaml")
        if default_path.exists():
            config_path = default_path

    try:
        if config_path and Path(config_path).exists():
            with open(config_path, "r") as f:
                yaml_config = yaml.safe_load(f) or {}

            pipeline_config = yaml_config.get("pipeline", {})
            settings = {
                key: yaml_config[key]
                for key in (
                    "sites", "fields", "per_page", "verbose", "transport",
                    "media", "store", "surreal", "logging", "report_path",
                )
                if key in yaml_config
            }
            return PipelineConfig(
                name=pipeline_config.get("name", "woocommerce_graph_source"),
                version=pipeline_config.get("version", "1.0.0"),
                **settings,
            )

        return PipelineConfig()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def validate_config(config: PipelineConfig) -> None:
    """
    Check that a run can start at all.

    Raises:
        ConfigurationError: On a missing site list, missing field list,
            empty credentials or duplicate site names.
    """
    if not config.sites:
        raise ConfigurationError("No sites configured")
    if not config.fields:
        raise ConfigurationError("No fields (resource kinds) configured")

    seen = set()
    for site in config.sites:
        label = site.site_name or site.api
        if not site.api_keys.consumer_key or not site.api_keys.consumer_secret:
            raise ConfigurationError(f"Site '{label}' is missing api_keys")
        if site.site_name in seen:
            raise ConfigurationError(f"Duplicate site_name '{site.site_name}'")
        seen.add(site.site_name)
