"""Envelope codec: request builder plus XML encode/decode via xmltodict.

Requests have the shape ``Envelope > Body > {Method} > {params}``; replies
``Envelope > Body > RESULT`` and optionally ``Envelope > Body > Fault``.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from xml.parsers.expat import ExpatError

import xmltodict

from engage_pod.enums.lists import Visibility
from engage_pod.errors import TransportError

logger = logging.getLogger(__name__)

RESULT_PATH = ("Envelope", "Body", "RESULT")


# ---------------------------------------------------------------------------
# EnvelopeRequest / RequestBuilder
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class EnvelopeRequest:
    """One remote method call with its ordered parameters."""

    method: str
    params: tuple[tuple[str, Any], ...] = ()

    def body(self) -> dict[str, Any]:
        """Return the nested mapping rendered into XML."""
        return {"Envelope": {"Body": {self.method: dict(self.params)}}}

    def param(self, name: str, default: Any = None) -> Any:
        """Return the last value given for ``name``."""
        for key, value in reversed(self.params):
            if key == name:
                return value
        return default


@dataclass(frozen=True, slots=True)
class RequestBuilder:
    """Immutable builder; every ``with_*`` call returns a new builder.

    Setting a name twice keeps the position of the first occurrence and the
    value of the last one.
    """

    method: str
    params: tuple[tuple[str, Any], ...] = field(default=())

    def _add(self, name: str, value: Any) -> RequestBuilder:
        return RequestBuilder(self.method, self.params + ((name, value),))

    def with_param(self, name: str, value: Any) -> RequestBuilder:
        """Add a parameter; ``None`` is sent as an empty element."""
        return self._add(name, value)

    def with_optional(self, name: str, value: Any) -> RequestBuilder:
        """Add a parameter only when ``value`` is not ``None``."""
        if value is None:
            return self
        return self._add(name, value)

    def with_flag(self, name: str, value: bool) -> RequestBuilder:
        """Add a boolean flag as lowercase ``true``/``false`` text."""
        return self._add(name, "true" if value else "false")

    def with_visibility(self, name: str, is_private: bool) -> RequestBuilder:
        """Add a ``0``/``1`` visibility flag."""
        return self._add(name, Visibility.from_private(is_private).value)

    def with_columns(self, columns: Mapping[str, Any], tag: str = "COLUMN") -> RequestBuilder:
        """Add ``columns`` as repeated ``{NAME, VALUE}`` elements."""
        return self._add(tag, [{"NAME": name, "VALUE": value} for name, value in columns.items()])

    def with_params(self, params: Mapping[str, Any] | None) -> RequestBuilder:
        """Add every entry of ``params`` verbatim."""
        builder = self
        for name, value in (params or {}).items():
            builder = builder._add(name, value)
        return builder

    def build(self) -> EnvelopeRequest:
        """Freeze into an ``EnvelopeRequest`` with duplicate names collapsed."""
        merged: dict[str, Any] = {}
        for name, value in self.params:
            merged[name] = value
        return EnvelopeRequest(self.method, tuple(merged.items()))


# ---------------------------------------------------------------------------
# encode / decode
# ---------------------------------------------------------------------------

def _to_wire(value: Any) -> Any:
    """Convert Python values into what xmltodict emits as element text."""
    if isinstance(value, Mapping):
        return {key: _to_wire(val) for key, val in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_wire(item) for item in value]
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return None
    return str(value)


def encode(request: EnvelopeRequest) -> str:
    """Serialize a request into the vendor XML envelope."""
    return xmltodict.unparse(_to_wire(request.body()))


def _repeatable_matcher(repeatable: Collection[str]):
    """Build an xmltodict ``force_list`` callable for direct children of RESULT."""
    names = frozenset(repeatable)

    def force_list(path: list[tuple[str, Any]], key: str, value: Any) -> bool:
        if key not in names:
            return False
        return tuple(name for name, _ in path) == RESULT_PATH

    return force_list


def decode(raw: bytes | str, repeatable: Iterable[str] = ()) -> dict[str, Any]:
    """Parse a reply envelope into nested dicts.

    Repeated sibling elements always decode to a list. Names listed in
    ``repeatable`` that sit directly under ``RESULT`` decode to a list even
    when they occur only once.

    Raises:
        TransportError: when ``raw`` is not well-formed XML.
    """
    names = tuple(repeatable)
    try:
        parsed = xmltodict.parse(raw, force_list=_repeatable_matcher(names) if names else None)
    except ExpatError as exc:
        logger.error("Malformed XML from server: %s", exc)
        raise TransportError("Invalid data from the server") from exc
    return dict(parsed) if parsed else {}
