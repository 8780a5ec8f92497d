# Overview: Transaction helpers shared by the services: row locks, retries, constraint mapping.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import PainPerduError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts on versioned rows). Domain errors are
    never retried.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))


def flush_or_raise(error: PainPerduError) -> None:
    """
    Flush pending writes; a unique/check constraint violation becomes `error`.

    The database constraint is the authoritative guard against concurrent
    writers that both passed an application-level pre-check.
    """
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise error
