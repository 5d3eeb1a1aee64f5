"""Read-only view over the ``RESULT`` node of a reply envelope."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from engage_pod.errors import MissingFieldError


class Result(Mapping[str, Any]):
    """Ordered, read-only mapping of result fields with explicit accessors.

    Args:
        method: Remote method that produced the result.
        fields: Decoded ``RESULT`` mapping.
    """

    def __init__(self, method: str, fields: Mapping[str, Any] | None) -> None:
        self.method = method
        self._fields: dict[str, Any] = dict(fields or {})

    def __getitem__(self, key: str) -> Any:
        return self._fields[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"Result({self.method!r}, {self._fields!r})"

    @property
    def success(self) -> str | None:
        """Raw ``SUCCESS`` value as sent by the server."""
        return self._fields.get("SUCCESS")

    def require(self, name: str) -> Any:
        """Return field ``name`` or raise ``MissingFieldError``."""
        if name not in self._fields:
            raise MissingFieldError(self.method, name)
        return self._fields[name]

    def text(self, name: str, default: str | None = None) -> str | None:
        """Return field ``name`` as text; empty elements give ``default``."""
        value = self._fields.get(name)
        if value is None:
            return default
        if isinstance(value, Mapping):
            value = value.get("#text", default)
        return value if value is None else str(value)

    def get_list(self, name: str) -> list[Any]:
        """Return field ``name`` normalized to a list.

        Absent or empty fields give ``[]``; a single occurrence gives a list
        of one. Empty elements inside the list are dropped.
        """
        value = self._fields.get(name)
        if value is None:
            return []
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return [value]

    def to_dict(self) -> dict[str, Any]:
        """Return a shallow copy of the fields."""
        return dict(self._fields)
