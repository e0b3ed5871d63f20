"""Configuration helpers for Selek."""

from .settings import (
    HistorySettings,
    ModelSettings,
    ObservabilitySettings,
    OrchestrationSettings,
    PermissionSettings,
    PreviewSettings,
    Settings,
    TrackingSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "ModelSettings",
    "OrchestrationSettings",
    "PreviewSettings",
    "TrackingSettings",
    "PermissionSettings",
    "HistorySettings",
    "ObservabilitySettings",
    "get_settings",
]
