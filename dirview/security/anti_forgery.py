"""Per-session anti-forgery tokens."""

import secrets
import threading
from collections import OrderedDict
from dataclasses import dataclass
from http.cookies import CookieError, SimpleCookie
from typing import Optional

from dirview.bootstrap.config import SESSION_COOKIE_NAME
from dirview.domain.correlation_id import get_logger

SESSION_LOGGER = get_logger("security.anti_forgery")

TOKEN_BYTES = 32
DEFAULT_MAX_SESSIONS = 10_000


def generate_token() -> str:
    """Return a 256-bit random token rendered as hex."""
    return secrets.token_hex(TOKEN_BYTES)


def tokens_match(provided: Optional[str], expected: Optional[str]) -> bool:
    """Constant-time token comparison; an empty expected token never matches."""
    if not expected:
        return False
    return secrets.compare_digest(
        (provided or "").encode("utf-8"), expected.encode("utf-8")
    )


@dataclass(frozen=True)
class Session:
    """A browsing session and its anti-forgery token."""

    session_id: str
    csrf_token: str
    created: bool = False


class SessionStore:
    """Thread-safe in-memory session registry with LRU eviction."""

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        self._max_sessions = max(1, max_sessions)
        self._lock = threading.Lock()
        self._tokens: "OrderedDict[str, str]" = OrderedDict()

    def ensure(self, session_id: Optional[str]) -> Session:
        """Return the session for ``session_id``, creating one when unknown."""
        with self._lock:
            if session_id and session_id in self._tokens:
                self._tokens.move_to_end(session_id)
                return Session(session_id, self._tokens[session_id])

            new_id = generate_token()
            token = generate_token()
            self._tokens[new_id] = token
            while len(self._tokens) > self._max_sessions:
                self._tokens.popitem(last=False)
        SESSION_LOGGER.info("Session created", extra={"event": "session_created"})
        return Session(new_id, token, created=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


def session_id_from_cookies(cookie_header: str) -> Optional[str]:
    """Extract the session id from a raw ``Cookie`` header."""
    if not cookie_header:
        return None
    cookies = SimpleCookie()
    try:
        cookies.load(cookie_header)
    except CookieError:
        return None
    morsel = cookies.get(SESSION_COOKIE_NAME)
    return morsel.value if morsel is not None else None


def session_cookie_header(session: Session) -> str:
    """Build the ``Set-Cookie`` value for a newly created session."""
    return (
        f"{SESSION_COOKIE_NAME}={session.session_id}; Path=/; HttpOnly; SameSite=Strict"
    )
