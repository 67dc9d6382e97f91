# Overview: Invoice number allocation (FAC-{year}-{sequence}).

"""
Invoice Numbering Service

Numbers look like FAC-2024-0001. The sequence is global: it counts every
invoice ever created and does NOT restart on January 1st, so FAC-2025-0050
can be followed by FAC-2026-0051. The year is the calendar year at creation
time.

Allocation bumps a counter row with a single UPDATE inside the caller's
transaction, so the number and the invoice insert commit (or roll back)
together. invoices.number is also unique; a collision surfaces as
NumberingCollision instead of a duplicate.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Invoice, InvoiceSequence
from ..validation import ConflictError
from factures.time_utils import utcnow


INVOICE_SEQUENCE_NAME = "invoice"
DEFAULT_PREFIX = "FAC"
DEFAULT_PAD = 4


class NumberingCollision(ConflictError):
    """Two creations minted the same invoice number. Safe to retry."""

    retryable = True


def format_invoice_number(year: int, sequence: int, *, prefix: str = DEFAULT_PREFIX, pad: int = DEFAULT_PAD) -> str:
    return f"{prefix}-{year:04d}-{sequence:0{pad}d}"


def invoice_number_for_count(
    current_count: int,
    *,
    year: int | None = None,
    prefix: str = DEFAULT_PREFIX,
    pad: int = DEFAULT_PAD,
) -> str:
    """Number for the next invoice given how many already exist."""
    if current_count < 0:
        raise ValueError("current_count must not be negative")
    if year is None:
        year = utcnow().year
    return format_invoice_number(year, current_count + 1, prefix=prefix, pad=pad)


def _number_settings() -> tuple[str, int]:
    return (
        current_app.config.get("INVOICE_NUMBER_PREFIX", DEFAULT_PREFIX),
        current_app.config.get("INVOICE_NUMBER_PAD", DEFAULT_PAD),
    )


def _current_sequence_value() -> int:
    return (
        db.session.query(InvoiceSequence.next_number)
        .filter_by(name=INVOICE_SEQUENCE_NAME)
        .scalar()
    )


def _stored_invoice_count() -> int:
    return db.session.query(Invoice).count()


def next_sequence() -> int:
    """
    Atomically take the next sequence value.

    The counter row is created on first use, seeded from the number of
    invoices already stored so existing data keeps count + 1 numbering.
    Must run inside the transaction that inserts the invoice, before the
    invoice is added to the session; nothing is committed here.
    """
    stmt = (
        update(InvoiceSequence)
        .where(InvoiceSequence.name == INVOICE_SEQUENCE_NAME)
        .values(next_number=InvoiceSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        db.session.flush()
        return _current_sequence_value() - 1

    existing = _stored_invoice_count()
    seq = InvoiceSequence(name=INVOICE_SEQUENCE_NAME, next_number=existing + 2)
    db.session.add(seq)
    try:
        db.session.flush()
        return existing + 1
    except IntegrityError:
        # Another creation inserted the row first; fall back to the UPDATE.
        db.session.rollback()
        result = db.session.execute(stmt)
        if not result.rowcount:
            raise
        db.session.flush()
        return _current_sequence_value() - 1


def allocate_invoice_number(now: datetime | None = None) -> str:
    """Mint the number for an invoice being created at `now`."""
    prefix, pad = _number_settings()
    year = (now or utcnow()).year
    return format_invoice_number(year, next_sequence(), prefix=prefix, pad=pad)


def is_number_collision(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return "uq_invoices_number" in message or "invoices.number" in message


def peek_next_number(now: datetime | None = None) -> str:
    """Number the next creation would get. Informational only; not reserved."""
    prefix, pad = _number_settings()
    current = _current_sequence_value()
    if current is None:
        current = _stored_invoice_count() + 1
    return format_invoice_number((now or utcnow()).year, current, prefix=prefix, pad=pad)
