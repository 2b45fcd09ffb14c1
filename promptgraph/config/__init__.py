"""Configuration Module."""

from promptgraph.config.settings import (
    AnalyticsSettings,
    Neo4jSettings,
    ObservabilitySettings,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "Neo4jSettings",
    "AnalyticsSettings",
    "ObservabilitySettings",
    "get_settings",
]
