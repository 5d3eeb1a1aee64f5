"""Success/failure classification of decoded reply envelopes."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from engage_pod.errors import ApiError, MissingFieldError
from engage_pod.utilities.result import Result

UNKNOWN_SERVER_ERROR = "Unknown Server Error"

_SUCCESS_VALUES = frozenset({"true", "success"})


def body_of(envelope: Mapping[str, Any]) -> Mapping[str, Any]:
    """Return ``Envelope.Body`` or an empty mapping."""
    root = envelope.get("Envelope")
    body = root.get("Body") if isinstance(root, Mapping) else None
    return body if isinstance(body, Mapping) else {}


def result_of(envelope: Mapping[str, Any]) -> Mapping[str, Any] | None:
    """Return ``Envelope.Body.RESULT`` when it is a mapping."""
    result = body_of(envelope).get("RESULT")
    return result if isinstance(result, Mapping) else None


def is_success(result: Mapping[str, Any] | None) -> bool:
    """True when ``SUCCESS`` is ``true`` or ``success``, ignoring case."""
    if not result:
        return False
    value = result.get("SUCCESS")
    if not isinstance(value, str):
        return False
    return value.strip().lower() in _SUCCESS_VALUES


def fault_message(envelope: Mapping[str, Any]) -> str:
    """Return the non-empty ``Fault.FaultString`` or the generic fallback."""
    fault = body_of(envelope).get("Fault")
    if isinstance(fault, Mapping):
        fault_string = fault.get("FaultString")
        if isinstance(fault_string, Mapping):
            fault_string = fault_string.get("#text")
        if fault_string:
            return str(fault_string)
    return UNKNOWN_SERVER_ERROR


def check_response(
    method: str,
    envelope: Mapping[str, Any],
    required_fields: Iterable[str] = (),
) -> Result:
    """Validate a reply and wrap its ``RESULT`` node.

    Raises:
        ApiError: when the server reports failure.
        MissingFieldError: when the call succeeded but a required field is absent.
    """
    result = result_of(envelope)
    if not is_success(result):
        raise ApiError(method, fault_message(envelope))

    for field in required_fields:
        if field not in result:
            raise MissingFieldError(method, field)

    return Result(method, result)
