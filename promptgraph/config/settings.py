"""
Application Settings - Pydantic Settings for configuration management.

Supports environment variables and .env file loading.
"""

from functools import lru_cache
from typing import Annotated, Literal

from pydantic import BeforeValidator, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def normalize_to_lowercase(v: str) -> str:
    """Normalize string to lowercase."""
    if isinstance(v, str):
        return v.lower()
    return v


class Neo4jSettings(BaseSettings):
    """Neo4j database connection settings."""

    model_config = SettingsConfigDict(env_prefix="NEO4J_")

    uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI")
    username: str = Field(default="neo4j", description="Neo4j username")
    password: SecretStr = Field(default=SecretStr("password"), description="Neo4j password")
    database: str = Field(default="neo4j", description="Neo4j database name")
    max_connection_pool_size: int = Field(default=50, description="Connection pool size")


class AnalyticsSettings(BaseSettings):
    """Graph analytics settings (projections, algorithms, gap analysis)."""

    model_config = SettingsConfigDict(env_prefix="ANALYTICS_")

    # Backend selection (case-insensitive via BeforeValidator)
    backend: Annotated[
        Literal["auto", "gds", "networkx"],
        BeforeValidator(normalize_to_lowercase),
    ] = Field(
        default="auto",
        description="'gds' runs algorithms inside Neo4j GDS, 'networkx' runs them "
                    "in process, 'auto' probes gds.version() and picks one",
    )

    # Projection lifecycle
    unique_projection_names: bool = Field(
        default=True,
        description="Suffix every projection name with a per-invocation token. "
                    "When disabled, fixed per-algorithm names are used and "
                    "acquisitions of the same name are serialized",
    )
    algorithm_timeout_seconds: float | None = Field(
        default=120.0, gt=0, description="Timeout per algorithm invocation (None disables)"
    )

    # Algorithm settings
    random_seed: int = Field(default=42, description="Seed for KNN and in-process Louvain")
    label_propagation_max_iterations: int = Field(
        default=10, ge=1, description="Maximum Label Propagation rounds"
    )

    # Gap analysis
    uncovered_limit: int = Field(default=50, ge=1, description="Max uncovered P0/P1 prompts")
    structural_hole_limit: int = Field(default=20, ge=1, description="Max structural holes")
    structural_hole_max_connections: int = Field(
        default=3, ge=1, description="Prompts with fewer neighbours count as structural holes"
    )
    related_min_weight: float = Field(
        default=0.5, ge=0.0, description="Min RELATES_TO weight for related prompt lookups"
    )
    max_network_depth: int = Field(default=5, ge=1, description="Max BFS depth for prompt networks")


class ObservabilitySettings(BaseSettings):
    """Observability settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_")

    log_format: Literal["json", "console"] = Field(
        default="json", description="Log format (json for production, console for development)"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Logging level"
    )

    # Sub-settings
    neo4j: Neo4jSettings = Field(default_factory=Neo4jSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
