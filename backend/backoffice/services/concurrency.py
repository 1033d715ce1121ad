# Overview: Service-layer helpers for concurrency; row locks, retries and atomic upserts.

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


TRANSIENT_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, retry_on=TRANSIENT_ERRORS):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts) unless `retry_on` says otherwise.
    The session is rolled back before every retry, so `func` must redo its
    whole unit of work.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except retry_on as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def upsert_statement(model, values: dict, *, conflict_columns: list[str], update_columns: list[str]):
    """
    Build a single INSERT ... ON CONFLICT DO UPDATE for the bound dialect.

    The unique index on `conflict_columns` is the serialization point: two
    concurrent writers for the same key both succeed, the later one wins,
    and neither can observe a state where the row is missing.
    """
    dialect = db.session.get_bind().dialect.name
    table = model.__table__

    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
        stmt = insert(table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=conflict_columns,
            set_={col: stmt.excluded[col] for col in update_columns},
        )

    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
        stmt = insert(table).values(**values)
        return stmt.on_conflict_do_update(
            index_elements=conflict_columns,
            set_={col: stmt.excluded[col] for col in update_columns},
        )

    if dialect in ("mysql", "mariadb"):
        from sqlalchemy.dialects.mysql import insert
        stmt = insert(table).values(**values)
        return stmt.on_duplicate_key_update(
            **{col: stmt.inserted[col] for col in update_columns}
        )

    raise NotImplementedError(f"Atomic upsert is not supported for dialect {dialect!r}")
