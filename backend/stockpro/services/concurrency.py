# Overview: Row locking and retry helpers shared by the ledger services.

from __future__ import annotations

import logging
import time

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking to a query.

    The lock is held until the surrounding transaction commits or rolls back.
    NOTE: SQLite ignores SELECT ... FOR UPDATE (it serializes writers on the
    database file instead); PostgreSQL and MySQL honor it.
    """
    return query.with_for_update()


def _retry_policy(attempts, backoff_base):
    if has_app_context():
        cfg = current_app.config
        if attempts is None:
            attempts = cfg.get("DB_RETRY_ATTEMPTS", 3)
        if backoff_base is None:
            backoff_base = cfg.get("DB_RETRY_BACKOFF", 0.1)
    return max(1, attempts or 3), (0.1 if backoff_base is None else backoff_base)


_RETRY_SCOPE_KEY = "stockpro.in_retry_scope"


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float | None = None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, lock timeouts) and StaleDataError.
    The session is rolled back before each retry, so `func` must redo all of
    its reads. Business-rule errors propagate on the first raise.

    Only the outermost call retries. A call made from inside another retried
    operation runs `func` once and lets failures propagate, so the whole
    outer operation is rolled back and replayed as one unit.
    """
    info = db.session.info
    if info.get(_RETRY_SCOPE_KEY):
        return func()

    attempts, backoff_base = _retry_policy(attempts, backoff_base)
    for attempt in range(attempts):
        info[_RETRY_SCOPE_KEY] = True
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "Retrying after %s (attempt %d of %d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
        finally:
            info.pop(_RETRY_SCOPE_KEY, None)
