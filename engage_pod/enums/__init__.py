"""Public enum exports used across the client."""

from engage_pod.enums.lists import ListType, Visibility
from engage_pod.enums.logging import LogLevel

__all__ = [
    "ListType",
    "Visibility",
    "LogLevel",
]
