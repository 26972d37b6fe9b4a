# Overview: Transaction boundaries for multi-step writes; rollback, retry, and row locking.

from __future__ import annotations

import time
from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ApiError, Conflict, InternalError
from ..extensions import db


Step = Callable[[dict], Any]


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
    (optimistic locking conflicts).
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_in_transaction(*steps: Step, attempts: int = 3) -> Any:
    """
    Run dependent write steps in order as one atomic unit.

    Each step receives a shared context dict so step N can read what step
    N-1 wrote. Changes are flushed after every step and committed once at
    the end. On any failure the whole sequence is rolled back:

    - ApiError (400/404/409...) raised by a step is re-raised unchanged
    - a unique-key violation becomes Conflict
    - transient lock / version conflicts are retried from the first step
    - anything else is logged and surfaced as InternalError

    Returns the value of the last step.
    """
    def _op():
        context: dict = {}
        result = None
        try:
            for step in steps:
                result = step(context)
                db.session.flush()
            db.session.commit()
        except (OperationalError, StaleDataError):
            raise
        except ApiError:
            db.session.rollback()
            raise
        except IntegrityError as exc:
            db.session.rollback()
            current_app.logger.info("Unique constraint violation: %s", exc.orig)
            raise Conflict() from exc
        except Exception as exc:
            db.session.rollback()
            current_app.logger.exception("Transaction rolled back")
            raise InternalError() from exc
        return result

    try:
        return run_with_retry(_op, attempts=attempts)
    except (OperationalError, StaleDataError) as exc:
        current_app.logger.exception("Transaction failed after %d attempts", attempts)
        raise InternalError() from exc


def atomic(func: Callable[..., Any], *args, **kwargs) -> Any:
    """Single-step form of run_in_transaction."""
    return run_in_transaction(lambda _ctx: func(*args, **kwargs))
