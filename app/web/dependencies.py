"""
Shared FastAPI dependencies: import session registry and storage backends.

Sessions live in process memory, keyed by id, and are lost on restart.
A session untouched for longer than ``imports.session_ttl_minutes`` is
evicted the next time a session is created.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from fastapi import HTTPException

from app.config import get_default_user_id, settings
from app.db.stores import AccountStore, TradeStore
from app.db.stores import get_account_store as _get_account_store
from app.db.stores import get_trade_store as _get_trade_store
from app.imports.session import ImportSession, ImportStep

logger = logging.getLogger(__name__)

_sessions: dict[str, ImportSession] = {}
_last_seen: dict[str, float] = {}
_sessions_lock = threading.Lock()


def prune_import_sessions(now: Optional[float] = None) -> int:
    """
    Evict idle sessions. A session mid-import is never evicted.

    Args:
        now: Monotonic clock reading to measure idleness against

    Returns:
        Number of sessions removed
    """
    now = time.monotonic() if now is None else now
    cutoff = now - settings.import_session_ttl_seconds
    with _sessions_lock:
        expired = [
            session_id
            for session_id, seen in _last_seen.items()
            if seen < cutoff and _sessions[session_id].step is not ImportStep.IMPORTING
        ]
        for session_id in expired:
            _sessions.pop(session_id, None)
            _last_seen.pop(session_id, None)
    if expired:
        logger.info(f"Evicted {len(expired)} idle import session(s)")
    return len(expired)


def create_import_session(user_id: Optional[str] = None) -> ImportSession:
    prune_import_sessions()
    session = ImportSession(user_id=user_id if user_id is not None else get_default_user_id())
    with _sessions_lock:
        _sessions[session.id] = session
        _last_seen[session.id] = time.monotonic()
    logger.debug(f"Created import session {session.id}")
    return session


def get_import_session(session_id: str) -> ImportSession:
    """Path dependency: the session for ``session_id`` or 404."""
    with _sessions_lock:
        session = _sessions.get(session_id)
        if session is not None:
            _last_seen[session_id] = time.monotonic()
    if session is None:
        raise HTTPException(status_code=404, detail=f"Import session {session_id} not found")
    return session


def discard_import_session(session_id: str) -> bool:
    with _sessions_lock:
        _last_seen.pop(session_id, None)
        return _sessions.pop(session_id, None) is not None


def clear_import_sessions() -> None:
    with _sessions_lock:
        _sessions.clear()
        _last_seen.clear()


def get_trade_store() -> TradeStore:
    return _get_trade_store()


def get_account_store() -> AccountStore:
    return _get_account_store()
