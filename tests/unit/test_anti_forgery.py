"""Unit tests for session tokens and anti-forgery checks."""

import threading

import pytest

from dirview.security.anti_forgery import (
    SessionStore,
    generate_token,
    session_cookie_header,
    session_id_from_cookies,
    tokens_match,
)


def test_generate_token_is_256_bit_hex():
    """Tokens are 64 hex characters and never repeat."""
    token = generate_token()
    assert len(token) == 64
    int(token, 16)
    assert token != generate_token()


@pytest.mark.parametrize(
    ("provided", "expected", "result"),
    [
        ("abc", "abc", True),
        ("abd", "abc", False),
        ("", "abc", False),
        (None, "abc", False),
        ("", "", False),
        (None, None, False),
        ("abc", None, False),
    ],
)
def test_tokens_match(provided, expected, result):
    """Only an exact, non-empty match passes."""
    assert tokens_match(provided, expected) is result


def test_tokens_match_handles_non_ascii():
    """Non-ASCII input is compared as bytes rather than raising."""
    assert tokens_match("tökén", "tökén") is True
    assert tokens_match("tökén", "token") is False


def test_ensure_creates_then_reuses_session():
    """The first visit creates a session; later visits reuse it."""
    store = SessionStore()
    first = store.ensure(None)
    assert first.created is True

    again = store.ensure(first.session_id)
    assert again.created is False
    assert again.session_id == first.session_id
    assert again.csrf_token == first.csrf_token
    assert len(store) == 1


def test_unknown_session_id_gets_fresh_session():
    """Clients cannot pick their own session id."""
    store = SessionStore()
    session = store.ensure("attacker-chosen")
    assert session.created is True
    assert session.session_id != "attacker-chosen"
    assert store.ensure("attacker-chosen").created is True


def test_token_stays_stable_for_session_lifetime():
    """The token is not rotated between requests."""
    store = SessionStore()
    session = store.ensure(None)
    tokens = {store.ensure(session.session_id).csrf_token for _ in range(5)}
    assert tokens == {session.csrf_token}


def test_store_evicts_least_recently_used_session():
    """The store is bounded and drops the least recently seen session."""
    store = SessionStore(max_sessions=2)
    oldest = store.ensure(None)
    middle = store.ensure(None)
    newest = store.ensure(None)

    assert len(store) == 2
    assert store.ensure(newest.session_id).csrf_token == newest.csrf_token
    assert store.ensure(middle.session_id).csrf_token == middle.csrf_token
    assert store.ensure(oldest.session_id).created is True


def test_active_session_survives_anonymous_traffic():
    """A session in use is never evicted by a flood of cookieless visits."""
    store = SessionStore(max_sessions=3)
    active = store.ensure(None)

    for _ in range(10):
        for _ in range(2):
            store.ensure(None)
        current = store.ensure(active.session_id)
        assert current.created is False
        assert current.csrf_token == active.csrf_token

    assert len(store) == 3


def test_store_is_thread_safe():
    """Concurrent session creation never loses or corrupts entries."""
    store = SessionStore()
    created = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            session = store.ensure(None)
            with lock:
                created.append(session)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store) == 400
    assert all(store.ensure(s.session_id).csrf_token == s.csrf_token for s in created)
    assert len(store) == 400


def test_session_created_is_logged(caplog):
    """New sessions emit an info event without the token."""
    store = SessionStore()
    with caplog.at_level("INFO", logger="dirview.security.anti_forgery"):
        session = store.ensure(None)
    (record,) = [r for r in caplog.records if getattr(r, "event", None) == "session_created"]
    assert session.csrf_token not in record.getMessage()


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("dirview_session=abc123", "abc123"),
        ("theme=dark; dirview_session=abc123; lang=en", "abc123"),
        ("theme=dark", None),
        ("", None),
    ],
)
def test_session_id_from_cookies(header, expected):
    """The session id is read from the named cookie only."""
    assert session_id_from_cookies(header) == expected


def test_session_cookie_header_attributes():
    """The cookie is scoped to the site root and hidden from scripts."""
    session = SessionStore().ensure(None)
    header = session_cookie_header(session)
    assert header.startswith(f"dirview_session={session.session_id};")
    assert "HttpOnly" in header
    assert "SameSite=Strict" in header
    assert "Path=/" in header
