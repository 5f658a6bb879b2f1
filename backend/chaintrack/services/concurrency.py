# Overview: Service-layer helpers for locking, retries and commit error handling.

from __future__ import annotations

import functools
import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


class StoreError(Exception):
    """Raised when the underlying database operation fails (after rollback)."""
    pass


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id compare-and-set still catches the conflict on SQLite.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). When attempts are exhausted, or any other
    SQLAlchemy error occurs, the session is rolled back and StoreError is
    raised with the original exception chained.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StoreError(f"Concurrent update could not be applied: {exc}") from exc
            current_app.logger.warning(
                "Retrying after concurrency conflict (attempt %d of %d): %s",
                attempt + 1,
                attempts,
                exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(str(exc)) from exc
    raise StoreError("No attempts were made")


def translate_store_errors(func):
    """Wrap a service read so SQLAlchemy failures surface as StoreError after rollback."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StoreError(str(exc)) from exc

    return wrapper


def commit_or_raise() -> None:
    """Commit the current session; roll back and raise StoreError on failure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise StoreError(str(exc)) from exc
