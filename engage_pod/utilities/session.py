"""Session state, login/logout handshake and envelope dispatch.

Classes:
    Session — immutable session id + URL encoding pair.
    SessionStore / MemorySessionStore / FileSessionStore — opt-in session reuse.
    SessionManager — owns the session and sends envelopes through ``Request``.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Protocol

from engage_pod.errors import AuthenticationError, TransportError
from engage_pod.utilities.classifier import fault_message, is_success, result_of
from engage_pod.utilities.envelope import EnvelopeRequest, RequestBuilder, decode, encode
from engage_pod.utilities.request import Request

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Session:
    """Authenticated session returned by ``Login``."""

    session_id: str
    session_encoding: str = ""


# ---------------------------------------------------------------------------
# Session stores
# ---------------------------------------------------------------------------

class SessionStore(Protocol):
    """Storage for sessions reused across client instances."""

    def load(self, key: str) -> Session | None: ...

    def save(self, key: str, session: Session) -> None: ...

    def discard(self, key: str) -> None: ...


class MemorySessionStore:
    """Process-local session store."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def load(self, key: str) -> Session | None:
        with self._lock:
            return self._sessions.get(key)

    def save(self, key: str, session: Session) -> None:
        with self._lock:
            self._sessions[key] = session

    def discard(self, key: str) -> None:
        with self._lock:
            self._sessions.pop(key, None)


class FileSessionStore:
    """JSON file session store, survives process restarts.

    The file maps store keys to ``{"session_id", "session_encoding"}``.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, dict[str, str]]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, dict[str, str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def load(self, key: str) -> Session | None:
        with self._lock:
            entry = self._read().get(key)
        if not isinstance(entry, dict) or not entry.get("session_id"):
            return None
        return Session(str(entry["session_id"]), str(entry.get("session_encoding") or ""))

    def save(self, key: str, session: Session) -> None:
        with self._lock:
            data = self._read()
            data[key] = asdict(session)
            self._write(data)

    def discard(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)


# ---------------------------------------------------------------------------
# SessionManager
# ---------------------------------------------------------------------------

class SessionManager:
    """Owns the session and performs every round trip.

    Args:
        base_url: Endpoint without session encoding, e.g.
            ``http://api5.silverpop.com/XMLAPI``.
        transport: ``Request`` used for the HTTP POST.
    """

    def __init__(self, base_url: str, transport: Request | None = None) -> None:
        self.base_url = base_url
        self.transport = transport or Request()
        self._lock = threading.Lock()
        self._session: Session | None = None

    # --- State ---

    @property
    def session(self) -> Session | None:
        with self._lock:
            return self._session

    @property
    def session_id(self) -> str | None:
        session = self.session
        return session.session_id if session else None

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    @property
    def current_endpoint(self) -> str:
        """Base URL followed by the session encoding (empty before login)."""
        return self._snapshot()[0]

    def _snapshot(self) -> tuple[str, str]:
        """Return ``(endpoint, session_id)`` read under one lock."""
        with self._lock:
            if self._session is None:
                return self.base_url, ""
            return self.base_url + self._session.session_encoding, self._session.session_id

    def resume(self, session: Session) -> None:
        """Install a session obtained earlier, e.g. from a ``SessionStore``."""
        with self._lock:
            self._session = session

    # --- Handshake ---

    def login(self, username: str, password: str) -> Session:
        """Authenticate and store the session.

        Raises:
            AuthenticationError: when the server rejects the credentials.
        """
        request = (
            RequestBuilder("Login")
            .with_param("USERNAME", username)
            .with_param("PASSWORD", password)
            .build()
        )
        # Anonymous exchange: no URL suffix and an empty jsessionid
        envelope = self._exchange(self.base_url, "", request)
        result = result_of(envelope)
        if not is_success(result):
            raise AuthenticationError(f"Login Error: {fault_message(envelope)}")

        session_id = result.get("SESSIONID")
        if not session_id:
            raise AuthenticationError("Login Error: no SESSIONID was returned from the server")

        session = Session(str(session_id), str(result.get("SESSION_ENCODING") or ""))
        with self._lock:
            self._session = session
        logger.info("Logged in to %s as %s", self.base_url, username)
        return session

    def logout(self) -> bool:
        """Terminate the remote session; the local session is dropped on success.

        Returns False without a round trip when there is no session.
        """
        if not self.is_authenticated:
            logger.debug("Logout skipped, not logged in")
            return False
        envelope = self.send(RequestBuilder("Logout").build())
        success = is_success(result_of(envelope))
        if success:
            with self._lock:
                self._session = None
            logger.info("Logged out from %s", self.base_url)
        else:
            logger.warning("Logout failed: %s", fault_message(envelope))
        return success

    # --- Dispatch ---

    def send(self, request: EnvelopeRequest, repeatable: Iterable[str] = ()) -> dict[str, Any]:
        """Send an authenticated request and return the decoded envelope.

        Raises:
            AuthenticationError: when there is no active session.
            TransportError: when the reply is missing or structurally invalid.
        """
        endpoint, session_id = self._snapshot()
        if not session_id:
            raise AuthenticationError("Not logged in")
        return self._exchange(endpoint, session_id, request, repeatable)

    def _exchange(
        self,
        endpoint: str,
        session_id: str,
        request: EnvelopeRequest,
        repeatable: Iterable[str] = (),
    ) -> dict[str, Any]:
        logger.debug("Calling %s at %s", request.method, self.base_url)
        fields = {"jsessionid": session_id, "xml": encode(request)}
        raw = self.transport.post_form(endpoint, fields)

        envelope = decode(raw, repeatable)
        result = result_of(envelope)
        if result is None or "SUCCESS" not in result:
            logger.error("Reply to %s has no RESULT.SUCCESS", request.method)
            raise TransportError("Invalid data from the server")
        return envelope
