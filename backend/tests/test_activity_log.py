from datetime import datetime, timedelta

from sqlalchemy.exc import OperationalError

from invdocs.extensions import db
from invdocs.models import ActivityLog
from invdocs.services import activity_service


T0 = datetime(2026, 3, 1, 9, 0, 0)


def test_identical_entry_within_window_is_suppressed(db_session):
    first = activity_service.log_activity("alice", "Added: Widget", now=T0)
    second = activity_service.log_activity("alice", "Added: Widget", now=T0 + timedelta(seconds=5))

    assert first is not None
    assert second is None
    assert db_session.query(ActivityLog).count() == 1


def test_identical_entry_after_window_is_written(db_session):
    activity_service.log_activity("alice", "Added: Widget", now=T0)
    activity_service.log_activity("alice", "Added: Widget", now=T0 + timedelta(seconds=40))

    assert db_session.query(ActivityLog).count() == 2


def test_only_most_recent_entry_is_compared(db_session):
    activity_service.log_activity("alice", "Added: Widget", now=T0)
    activity_service.log_activity("bob", "Added: Widget", now=T0 + timedelta(seconds=1))
    activity_service.log_activity("alice", "Added: Widget", now=T0 + timedelta(seconds=2))

    assert db_session.query(ActivityLog).count() == 3


def test_blank_user_recorded_as_unknown(db_session):
    entry = activity_service.log_activity("   ", "Logged in", now=T0)
    assert entry.user == "Unknown"

    entry = activity_service.log_activity(None, "Deleted: Widget", now=T0)
    assert entry.user == "Unknown"


def test_list_recent_newest_first_and_limited(db_session):
    for i in range(5):
        activity_service.log_activity("alice", f"action {i}", now=T0 + timedelta(minutes=i))

    entries = activity_service.list_recent(3)
    assert [e.action for e in entries] == ["action 4", "action 3", "action 2"]


def test_store_failure_is_swallowed(db_session, monkeypatch):
    def boom():
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db.session, "commit", boom)

    assert activity_service.log_activity("alice", "Logged in", now=T0) is None


def test_logs_endpoint(client, db_session):
    activity_service.log_activity("alice", "first", now=T0)
    activity_service.log_activity("alice", "second", now=T0 + timedelta(seconds=1))

    resp = client.get("/api/logs?limit=1")
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["count"] == 1
    assert body["items"][0]["action"] == "second"
