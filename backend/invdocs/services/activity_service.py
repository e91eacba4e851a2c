# Overview: Append-only activity log with a short-window duplicate guard.

from __future__ import annotations

from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import ActivityLog
from invdocs.time_utils import utcnow, ensure_naive_utc
from .concurrency import keyed_lock
"""
Activity Log Invariants (authoritative)

- Append-only: entries are never updated or deleted.
- A new entry identical in user AND action to the most recent entry, arriving
  within ACTIVITY_DEDUP_WINDOW_SECONDS of it, is dropped silently. This is an
  anti-flood guard, not a correctness guarantee.
- Logging never fails the caller: store errors are rolled back, reported to
  the application logger, and swallowed.
"""

DEFAULT_DEDUP_WINDOW_SECONDS = 30
_LOCK_KEY = "activity-log"


def _dedup_window() -> timedelta:
    seconds = current_app.config.get("ACTIVITY_DEDUP_WINDOW_SECONDS", DEFAULT_DEDUP_WINDOW_SECONDS)
    return timedelta(seconds=seconds)


def normalize_actor(user) -> str:
    value = str(user).strip() if user is not None else ""
    return value[:64] or "Unknown"


def _is_duplicate(last: ActivityLog | None, user: str, action: str, now: datetime) -> bool:
    if last is None:
        return False
    last_user = last.user or "Unknown"
    last_action = last.action or ""
    if last_user != user or last_action != action:
        return False
    if last.time is None:
        return False
    return now - ensure_naive_utc(last.time) <= _dedup_window()


def log_activity(user, action, *, now: datetime | None = None) -> ActivityLog | None:
    """
    Append an activity entry unless it duplicates the most recent one.

    Returns the created entry, or None when the entry was suppressed or the
    write failed.
    """
    safe_user = normalize_actor(user)
    safe_action = str(action or "")
    now = now or utcnow()

    with keyed_lock(_LOCK_KEY):
        try:
            last = (
                db.session.query(ActivityLog)
                .order_by(ActivityLog.time.desc(), ActivityLog.id.desc())
                .first()
            )
            if _is_duplicate(last, safe_user, safe_action, now):
                return None

            entry = ActivityLog(user=safe_user, action=safe_action, time=now)
            db.session.add(entry)
            db.session.commit()
            return entry
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to write activity log entry (user=%s)", safe_user)
            return None


def list_recent(limit: int | None = None) -> list[ActivityLog]:
    """Most recent entries first."""
    max_limit = current_app.config.get("ACTIVITY_LOG_LIMIT", 500)
    if limit is None or limit <= 0:
        limit = max_limit
    limit = min(limit, max_limit)

    return (
        db.session.query(ActivityLog)
        .order_by(ActivityLog.time.desc(), ActivityLog.id.desc())
        .limit(limit)
        .all()
    )
