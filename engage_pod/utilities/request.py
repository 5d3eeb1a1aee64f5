"""httpx transport for the Engage XML API.

Classes:
    RequestErrorType — classification of transport failures.
    Request — single-shot form POST client with error counters.
"""


from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from datetime import datetime
from enum import StrEnum
from typing import Any

import httpx

from engage_pod.errors import TransportError

logger = logging.getLogger(__name__)

HTTP_FAILED = "HTTP request failed"

# Curl-style empty Expect disables 100-continue negotiation
FORM_HEADERS = {
    "Expect": "",
    "Content-Type": "application/x-www-form-urlencoded; charset=utf-8",
}


def strip_path_params(url: str) -> str:
    """Drop path parameters such as ``;jsessionid=...`` from ``url``."""
    return url.split(";", 1)[0]


# ---------------------------------------------------------------------------
# RequestErrorType
# ---------------------------------------------------------------------------

class RequestErrorType(StrEnum):
    """Error type classification for HTTP request failures."""

    TIMEOUT = "timeout"
    CONNECT = "connect"
    BAD_STATUS = "bad_status_code"
    EMPTY_BODY = "empty_body"
    REQUEST = "request"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------

class Request:
    """Synchronous httpx client issuing exactly one POST per call.

    There is no retry: any failure is recorded and surfaced as
    ``TransportError`` to the caller.

    Args:
        timeout: Request timeout in seconds.
        headers: Extra headers merged over the fixed form headers.
    """

    def __init__(self, timeout: int = 30, headers: Mapping[str, str] | None = None) -> None:
        self._timeout = timeout
        self._headers: dict[str, str] = {**FORM_HEADERS, **(headers or {})}

        # Error counters
        self.request_count: int = 0
        self.timeout_err: int = 0
        self.connect_err: int = 0
        self.bad_status_code_err: int = 0
        self.empty_body_err: int = 0
        self.request_err: int = 0
        self.other_err: int = 0

        # Last exchange
        self.response: httpx.Response | None = None
        self.last_request_url: str | None = None
        self.last_error: dict[str, str] | None = None
        self._last_request_time: datetime | None = None
        self._last_error_time: datetime | None = None

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every POST."""
        return dict(self._headers)

    def post_form(self, url: str, fields: Mapping[str, str]) -> bytes:
        """POST ``fields`` form-encoded to ``url`` and return the raw body.

        Raises:
            TransportError: on network failure, non-2xx status or empty body.
        """
        safe_url = strip_path_params(url)
        self._last_request_time = datetime.now()
        self.last_request_url = safe_url
        self.response = None

        try:
            start = time.monotonic()
            with httpx.Client(timeout=self._timeout, follow_redirects=True) as client:
                self.response = client.post(url, data=dict(fields), headers=self._headers)
            elapsed_ms = (time.monotonic() - start) * 1000
        except httpx.HTTPError as exc:
            self._record_error(self._classify_exception(exc), str(exc), safe_url)
            raise TransportError(HTTP_FAILED) from exc

        self.request_count += 1
        status = self.response.status_code
        logger.debug("POST %s -> %d in %.0f ms", safe_url, status, elapsed_ms)

        if not 200 <= status < 300:
            self._record_error(RequestErrorType.BAD_STATUS, f"HTTP {status}", safe_url)
            raise TransportError(HTTP_FAILED)

        content = self.response.content
        if not content:
            self._record_error(RequestErrorType.EMPTY_BODY, "Empty response body", safe_url)
            raise TransportError(HTTP_FAILED)

        return content

    # --- Error tracking ---

    def _record_error(self, error_type: RequestErrorType, message: str, url: str) -> None:
        """Store the last error and increment its counter."""
        logger.error("POST %s failed (%s): %s", url, error_type, message)
        self.last_error = {"type": str(error_type), "message": message, "url": url}
        self._last_error_time = datetime.now()
        counter_name = f"{error_type}_err"
        if hasattr(self, counter_name):
            setattr(self, counter_name, getattr(self, counter_name) + 1)

    @staticmethod
    def _classify_exception(exc: Exception) -> RequestErrorType:
        """Map an httpx exception to its error type."""
        if isinstance(exc, httpx.TimeoutException):
            return RequestErrorType.TIMEOUT
        if isinstance(exc, (httpx.ConnectError, httpx.ProxyError)):
            return RequestErrorType.CONNECT
        if isinstance(exc, httpx.HTTPError):
            return RequestErrorType.REQUEST
        return RequestErrorType.OTHER

    def has_errors(self) -> bool:
        """True if the most recent POST failed."""
        if self._last_request_time is None or self._last_error_time is None:
            return False
        return self._last_error_time >= self._last_request_time

    # --- Statistics ---

    def log_stats(self, logger: logging.Logger) -> dict[str, Any]:
        """Log and return request and error counters."""
        error_breakdown: dict[str, int] = {}
        for error_type in RequestErrorType:
            val: int = getattr(self, f"{error_type}_err")
            if val > 0:
                error_breakdown[str(error_type)] = val
        total_errors = sum(error_breakdown.values())

        stats: dict[str, Any] = {
            "total_requests": self.request_count,
            "total_errors": total_errors,
            "error_breakdown": error_breakdown,
        }
        logger.info("Request statistics: %s", stats)
        return stats
