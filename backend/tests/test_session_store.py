"""
Session store tests.

Verifies:
- Exactly one row per user, whatever the number of logins
- Only the latest identifier validates
- Idle expiry, pruning and force-logout helpers
- Storage errors surface as StorageFailure
"""

from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from backoffice.extensions import db
from backoffice.models import UserSession
from backoffice.services import session_service
from backoffice.services.session_service import (
    SessionMetadata,
    SessionStore,
    StorageFailure,
    generate_token,
    hash_token,
)
from backoffice.time_utils import utcnow


def _age_session(user_id: int, minutes: int) -> None:
    db.session.execute(
        update(UserSession)
        .where(UserSession.user_id == user_id)
        .values(last_activity=utcnow() - timedelta(minutes=minutes)),
        execution_options={"synchronize_session": False},
    )
    db.session.commit()


class TestIdentifiers:
    def test_generated_identifier_is_60_url_safe_chars(self):
        token = generate_token()
        assert len(token) == 60
        assert set(token) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

    def test_identifiers_are_unique(self):
        assert len({generate_token() for _ in range(50)}) == 50

    def test_only_the_hash_is_stored(self, session_store, user):
        token = generate_token()
        session_store.record_session(user.id, token)

        row = db.session.query(UserSession).filter_by(user_id=user.id).one()
        assert row.token_hash == hash_token(token)
        assert token not in (row.token_hash, row.user_agent or "", row.ip_address or "")


class TestSingleRowPerUser:
    def test_record_then_validate(self, session_store, user):
        token = generate_token()
        session_store.record_session(user.id, token, SessionMetadata(ip_address="10.0.0.5", user_agent="pytest"))

        assert session_store.is_valid(user.id, token) is True
        row = db.session.query(UserSession).filter_by(user_id=user.id).one()
        assert row.ip_address == "10.0.0.5"
        assert row.user_agent == "pytest"

    def test_wrong_identifier_is_invalid(self, session_store, user):
        session_store.record_session(user.id, generate_token())
        assert session_store.is_valid(user.id, generate_token()) is False

    def test_unknown_user_is_invalid(self, session_store):
        assert session_store.is_valid(999, generate_token()) is False

    def test_empty_identifier_is_invalid(self, session_store, user):
        session_store.record_session(user.id, generate_token())
        assert session_store.is_valid(user.id, "") is False

    def test_repeated_logins_leave_one_row_and_only_latest_valid(self, session_store, user):
        tokens = [generate_token() for _ in range(5)]
        for token in tokens:
            session_store.record_session(user.id, token)

        assert db.session.query(UserSession).filter_by(user_id=user.id).count() == 1
        assert session_store.is_valid(user.id, tokens[-1]) is True
        for token in tokens[:-1]:
            assert session_store.is_valid(user.id, token) is False

    def test_evict_others_keeps_the_current_identifier(self, session_store, user):
        token = generate_token()
        session_store.record_session(user.id, token)

        assert session_store.evict_others(user.id, token) == 0
        assert session_store.is_valid(user.id, token) is True

    def test_evict_others_removes_a_different_identifier(self, session_store, user):
        session_store.record_session(user.id, generate_token())

        assert session_store.evict_others(user.id, generate_token()) == 1
        assert db.session.query(UserSession).count() == 0

    def test_clear_removes_the_row(self, session_store, user):
        token = generate_token()
        session_store.record_session(user.id, token)

        assert session_store.clear(user.id) == 1
        assert session_store.is_valid(user.id, token) is False

    def test_owner_of_resolves_bearer_identifiers(self, session_store, user):
        token = generate_token()
        session_store.record_session(user.id, token)

        assert session_store.owner_of(token) == user.id
        assert session_store.owner_of(generate_token()) is None
        assert session_store.owner_of("") is None


class TestIdleExpiry:
    def test_idle_session_expires(self, user):
        store = SessionStore(idle_timeout=timedelta(minutes=30))
        token = generate_token()
        store.record_session(user.id, token)

        _age_session(user.id, 31)
        assert store.is_valid(user.id, token) is False

    def test_touch_refreshes_activity(self, user):
        store = SessionStore(idle_timeout=timedelta(minutes=30))
        token = generate_token()
        store.record_session(user.id, token)
        _age_session(user.id, 29)

        store.touch(user.id)
        last_activity = db.session.query(UserSession.last_activity).filter_by(user_id=user.id).scalar()
        assert utcnow() - last_activity < timedelta(minutes=1)
        assert store.is_valid(user.id, token) is True

    def test_disabled_window_never_expires(self, user):
        store = SessionStore(idle_timeout=None)
        token = generate_token()
        store.record_session(user.id, token)

        _age_session(user.id, 60 * 24 * 30)
        assert store.is_valid(user.id, token) is True

    def test_from_config_zero_disables_expiry(self):
        assert SessionStore.from_config({"SESSION_IDLE_TIMEOUT_MINUTES": 0}).idle_timeout is None
        assert SessionStore.from_config({"SESSION_IDLE_TIMEOUT_MINUTES": 240}).idle_timeout == timedelta(hours=4)

    def test_prune_expired_deletes_only_idle_rows(self, user, inactive_user):
        store = SessionStore(idle_timeout=timedelta(minutes=30))
        store.record_session(user.id, generate_token())
        store.record_session(inactive_user.id, generate_token())
        _age_session(inactive_user.id, 45)

        assert store.prune_expired() == 1
        assert db.session.query(UserSession.user_id).scalar() == user.id

    def test_prune_is_a_no_op_without_window(self, user):
        store = SessionStore(idle_timeout=None)
        store.record_session(user.id, generate_token())
        assert store.prune_expired() == 0


class TestStorageFailure:
    def test_read_error_raises_storage_failure(self, session_store, user, monkeypatch):
        def broken_select(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(session_service, "select", broken_select)

        with pytest.raises(StorageFailure):
            session_store.is_valid(user.id, generate_token())

    def test_write_error_raises_storage_failure(self, session_store, user, monkeypatch):
        def broken_upsert(*args, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(session_service, "upsert_statement", broken_upsert)

        with pytest.raises(StorageFailure):
            session_store.record_session(user.id, generate_token())

    def test_transaction_rolls_back_both_writes(self, session_store, user, monkeypatch):
        old = generate_token()
        session_store.record_session(user.id, old)

        def broken_evict(*args, **kwargs):
            raise StorageFailure("evict failed")

        monkeypatch.setattr(session_store, "evict_others", broken_evict)

        new = generate_token()
        with pytest.raises(StorageFailure):
            with session_store.transaction():
                session_store.record_session(user.id, new, commit=False)
                session_store.evict_others(user.id, new, commit=False)

        assert session_store.is_valid(user.id, old) is True
        assert session_store.is_valid(user.id, new) is False
