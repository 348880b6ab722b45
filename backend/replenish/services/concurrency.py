# Overview: Row locking, retry and commit helpers shared by every write path.

from __future__ import annotations

import time
from contextvars import ContextVar

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageError
from ..extensions import db

# Set while an outer run_with_retry owns the transaction. Nested calls must not
# roll back or retry on their own: that would discard the outer unit's work.
_retry_scope_active: ContextVar[bool] = ContextVar("retry_scope_active", default=False)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The optimistic version_id columns cover SQLite.
    """
    return query.with_for_update()


def _default_attempts() -> int:
    try:
        return int(current_app.config.get("DB_RETRY_ATTEMPTS", 3))
    except RuntimeError:
        return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a DB unit of work with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError
    (optimistic locking conflicts), rolling back between attempts. When the
    attempts are exhausted, or any other database error occurs, the session is
    rolled back and StorageError is raised. Business errors pass through
    untouched; the caller decides whether to roll back.
    """
    if _retry_scope_active.get():
        return func()

    attempts = attempts or _default_attempts()
    token = _retry_scope_active.set(True)
    try:
        for attempt in range(attempts):
            try:
                return func()
            except (OperationalError, StaleDataError) as exc:
                db.session.rollback()
                if attempt >= attempts - 1:
                    raise StorageError(f"Storage unavailable after {attempts} attempts: {exc}") from exc
                time.sleep(backoff_base * (2 ** attempt))
            except SQLAlchemyError as exc:
                db.session.rollback()
                raise StorageError(f"Storage failure: {exc}") from exc
    finally:
        _retry_scope_active.reset(token)


def commit_session():
    """Commit the current session; storage failures roll back and raise StorageError."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StorageError(f"Commit failed: {exc}") from exc
