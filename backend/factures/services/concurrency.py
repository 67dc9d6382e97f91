# Overview: Row locking and retry for invoice write paths.

"""
Invoice write guards

Each invoice write is a closure that loads the invoice with lock_invoice(),
mutates it and commits. run_invoice_write() runs that closure and, on a
transient failure, rolls back and runs it again from scratch:

- OperationalError: database locked / deadlock
- StaleDataError: a row changed under the session
- NumberingCollision: the next attempt bumps the counter again and gets a
  fresh number

Anything else (validation, not found) propagates on the first attempt.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Invoice
from .numbering import NumberingCollision


T = TypeVar("T")

RETRYABLE_WRITE_ERRORS = (OperationalError, StaleDataError, NumberingCollision)


def lock_invoice(invoice_id: int) -> Invoice | None:
    """
    Load an invoice with SELECT ... FOR UPDATE.

    SQLite ignores the lock clause; there the single-writer database
    serialises invoice writes instead.
    """
    return (
        db.session.query(Invoice)
        .filter_by(id=invoice_id)
        .with_for_update()
        .first()
    )


def run_invoice_write(
    write: Callable[[], T],
    *,
    action: str,
    attempts: int = 3,
    backoff_base: float = 0.05,
) -> T:
    """Run `write`, retrying RETRYABLE_WRITE_ERRORS with exponential backoff."""
    attempt = 1
    while True:
        try:
            return write()
        except RETRYABLE_WRITE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                current_app.logger.warning(
                    "Giving up on %s after %d attempts: %s", action, attempts, exc
                )
                raise
            current_app.logger.info(
                "Retrying %s (attempt %d/%d) after %s", action, attempt + 1, attempts, type(exc).__name__
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
            attempt += 1
