"""Settings models for the Engage client."""

from engage_pod.settings.main import EngageSettings, LogSettings

__all__ = [
    "EngageSettings",
    "LogSettings",
]
