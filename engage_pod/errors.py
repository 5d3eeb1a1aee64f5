"""Exception hierarchy raised by the Engage XML API client.

Classes:
    EngageError — base class for every client failure.
    TransportError — no usable reply from the server.
    AuthenticationError — login rejected or no active session.
    ApiError — the server processed the call and reported failure.
    MissingFieldError — the call succeeded but a required result field is absent.
"""

from __future__ import annotations


class EngageError(Exception):
    """Base class for all Engage client errors."""


class TransportError(EngageError):
    """Raised when the HTTP exchange or the reply envelope is unusable."""


class AuthenticationError(EngageError):
    """Raised when login fails or a call is made without an active session."""


class ApiError(EngageError):
    """Remote failure of a single API method.

    Args:
        method: Remote method name (e.g. ``AddRecipient``).
        message: Fault string reported by the server or a generic fallback.
    """

    def __init__(self, method: str, message: str) -> None:
        self.method = method
        self.message = message
        super().__init__(f"{method} Error: {message}")


class MissingFieldError(ApiError):
    """The server reported success but omitted a field the caller requires."""

    def __init__(self, method: str, field: str) -> None:
        self.field = field
        super().__init__(method, f"succeeded but field {field} missing")
