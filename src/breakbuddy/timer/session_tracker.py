"""Per-interval session identifiers, so each focus sprint is logged once."""

from __future__ import annotations

import random
import string
import time

_ID_ALPHABET = string.digits + string.ascii_lowercase


def create_session_id(now_ms: int | None = None) -> str:
    """Process-unique id: epoch ms plus a short random suffix."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    suffix = "".join(random.choices(_ID_ALPHABET, k=6))
    return f"{stamp}-{suffix}"


class SessionTracker:
    """Tracks the counting-down session and the last one credited to stats."""

    def __init__(self) -> None:
        self.active_session_id: str | None = None
        self.last_logged_session_id: str | None = None

    def ensure_active(self, now_ms: int | None = None) -> str:
        if self.active_session_id is None:
            self.active_session_id = create_session_id(now_ms)
        return self.active_session_id

    def begin_new(self, now_ms: int | None = None) -> str:
        self.active_session_id = create_session_id(now_ms)
        return self.active_session_id

    def needs_fresh_id(self) -> bool:
        """True when there is no active id or the active one was already logged."""
        return self.active_session_id is None or self.active_session_id == self.last_logged_session_id

    def is_logged(self, session_id: str) -> bool:
        return session_id == self.last_logged_session_id

    def mark_logged(self, session_id: str) -> None:
        self.last_logged_session_id = session_id
        self.active_session_id = None

    def clear(self) -> None:
        self.active_session_id = None
        self.last_logged_session_id = None
