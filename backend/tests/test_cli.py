from invdocs.models import User
from invdocs.services import activity_service


def test_system_init_creates_default_admin(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["system", "init"])
    assert result.exit_code == 0
    assert "Created default admin: admin" in result.output
    assert db_session.query(User).count() == 1

    result = runner.invoke(args=["system", "init"])
    assert "default admin not created" in result.output
    assert db_session.query(User).count() == 1


def test_users_create_and_list(app, db_session):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["users", "create", "--username", "carol", "--password", "longenough"])
    assert result.exit_code == 0
    assert "PASS Created user: carol" in result.output

    result = runner.invoke(args=["users", "list"])
    assert "carol" in result.output


def test_users_create_rejects_weak_password(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["users", "create", "--username", "dave", "--password", "short"])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_logs_tail(app, db_session):
    activity_service.log_activity("alice", "Added: Widget")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["logs", "tail", "--limit", "5"])
    assert result.exit_code == 0
    assert "Added: Widget" in result.output
