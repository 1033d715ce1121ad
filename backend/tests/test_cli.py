"""Flask CLI command tests."""

from datetime import timedelta

from sqlalchemy import update

from backoffice.extensions import db
from backoffice.models import Branch, Store, User, UserSession
from backoffice.services.session_service import generate_token
from backoffice.time_utils import utcnow


class TestUserCommands:
    def test_create_user(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            "users", "create", "--name", "Ben Reyes", "--email", "ben@example.com", "--password", "Secret123!",
        ])
        assert result.exit_code == 0
        assert "PASS Created user" in result.output
        assert db.session.query(User).filter_by(email="ben@example.com").count() == 1

    def test_weak_password_is_rejected(self, app):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--name", "Ben", "--email", "ben@example.com", "--password", "weak",
        ])
        assert "FAIL Password validation failed" in result.output
        assert db.session.query(User).count() == 0

    def test_duplicate_email(self, app, user):
        result = app.test_cli_runner().invoke(args=[
            "users", "create", "--name", "Ana", "--email", "ANA@example.com", "--password", "Secret123!",
        ])
        assert "FAIL Email already exists" in result.output

    def test_list_users(self, app, user):
        result = app.test_cli_runner().invoke(args=["users", "list"])
        assert result.exit_code == 0
        assert "ana@example.com" in result.output


class TestReferenceCommands:
    def test_add_store_and_branch(self, app):
        runner = app.test_cli_runner()
        assert "PASS" in runner.invoke(args=["reference", "add-store", "--name", "S2"]).output
        result = runner.invoke(args=["reference", "add-branch", "--name", "B2", "--store", "S2"])
        assert "PASS Created branch: B2" in result.output

        assert db.session.query(Store).filter_by(store_name="S2").count() == 1
        assert db.session.query(Branch).filter_by(branch_name="B2", store_name="S2").count() == 1

        listing = runner.invoke(args=["reference", "list"]).output
        assert "S2" in listing
        assert "- B2" in listing

    def test_branch_needs_existing_store(self, app):
        result = app.test_cli_runner().invoke(args=["reference", "add-branch", "--name", "B2", "--store", "NOPE"])
        assert "FAIL Store 'NOPE' not found" in result.output
        assert db.session.query(Branch).count() == 0

    def test_duplicate_store(self, app, seed):
        result = app.test_cli_runner().invoke(args=["reference", "add-store", "--name", "S1"])
        assert "FAIL Store 'S1' already exists" in result.output


class TestSessionCommands:
    def test_list_and_clear_one_user(self, app, session_store, user, inactive_user):
        session_store.record_session(user.id, generate_token())
        session_store.record_session(inactive_user.id, generate_token())
        runner = app.test_cli_runner()

        listing = runner.invoke(args=["sessions", "list"]).output
        assert "ana@example.com" in listing
        assert "old@example.com" in listing

        result = runner.invoke(args=["sessions", "clear", "--user", str(user.id)])
        assert f"PASS Cleared 1 session(s) for user {user.id}" in result.output
        assert db.session.query(UserSession.user_id).scalar() == inactive_user.id

    def test_clear_everyone(self, app, session_store, user, inactive_user):
        session_store.record_session(user.id, generate_token())
        session_store.record_session(inactive_user.id, generate_token())

        result = app.test_cli_runner().invoke(args=["sessions", "clear"])
        assert "PASS Cleared 2 session(s)" in result.output
        assert db.session.query(UserSession).count() == 0

    def test_prune(self, app, session_store, user, inactive_user):
        session_store.record_session(user.id, generate_token())
        session_store.record_session(inactive_user.id, generate_token())
        db.session.execute(
            update(UserSession)
            .where(UserSession.user_id == inactive_user.id)
            .values(last_activity=utcnow() - timedelta(days=1)),
            execution_options={"synchronize_session": False},
        )
        db.session.commit()

        result = app.test_cli_runner().invoke(args=["sessions", "prune"])
        assert "PASS Pruned 1 idle session(s)" in result.output
        assert db.session.query(UserSession).count() == 1

    def test_no_sessions(self, app):
        result = app.test_cli_runner().invoke(args=["sessions", "list"])
        assert "No active sessions." in result.output
