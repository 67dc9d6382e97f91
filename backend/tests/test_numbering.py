"""
Invoice numbering: FAC-{year}-{sequence}, global sequence, no yearly reset.
"""

from datetime import datetime

import pytest
from sqlalchemy import insert

from factures.extensions import db
from factures.models import Invoice, InvoiceSequence
from factures.services import invoice_service, numbering
from factures.services.numbering import (
    format_invoice_number,
    invoice_number_for_count,
    is_number_collision,
    peek_next_number,
    NumberingCollision,
)


def _items():
    return [{"product_name": "Plat du jour", "unit_price": 2500, "quantity": 1}]


class TestFormatting:
    def test_zero_padded(self):
        assert format_invoice_number(2024, 1) == "FAC-2024-0001"
        assert format_invoice_number(2024, 12345) == "FAC-2024-12345"

    def test_for_count(self):
        assert invoice_number_for_count(0, year=2024) == "FAC-2024-0001"
        assert invoice_number_for_count(50, year=2025) == "FAC-2025-0051"

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            invoice_number_for_count(-1, year=2024)


class TestAllocation:
    def test_sequential_in_same_year(self, db_session):
        first = invoice_service.create_invoice(items=_items(), now=datetime(2024, 3, 5, 12, 0))
        second = invoice_service.create_invoice(items=_items(), now=datetime(2024, 3, 5, 12, 5))

        assert first.number == "FAC-2024-0001"
        assert second.number == "FAC-2024-0002"

    def test_sequence_does_not_reset_on_new_year(self, db_session):
        for day in range(50):
            invoice_service.create_invoice(items=_items(), now=datetime(2024, 6, 1 + day % 28, 10, 0))

        invoice = invoice_service.create_invoice(items=_items(), now=datetime(2025, 1, 2, 9, 0))
        assert invoice.number == "FAC-2025-0051"

    def test_deleting_an_invoice_does_not_reuse_its_number(self, db_session):
        first = invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 1))
        invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 2))
        invoice_service.delete_invoice(first.id)

        third = invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 3))
        assert third.number == "FAC-2024-0003"

    def test_counter_seeded_from_existing_invoices(self, db_session):
        for n in range(1, 4):
            db_session.add(Invoice(number=f"FAC-2023-{n:04d}", total=0, created_at=datetime(2023, 5, n)))
        db_session.commit()

        invoice = invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 1))
        assert invoice.number == "FAC-2024-0004"
        assert db_session.query(InvoiceSequence).one().next_number == 5

    def test_peek_does_not_reserve(self, db_session):
        assert peek_next_number(datetime(2024, 1, 1)) == "FAC-2024-0001"
        assert peek_next_number(datetime(2024, 1, 1)) == "FAC-2024-0001"

        invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 1))
        assert peek_next_number(datetime(2024, 1, 1)) == "FAC-2024-0002"

    def test_prefix_and_padding_from_config(self, app, db_session):
        app.config.update(INVOICE_NUMBER_PREFIX="INV", INVOICE_NUMBER_PAD=6)
        try:
            invoice = invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 1))
        finally:
            app.config.update(INVOICE_NUMBER_PREFIX="FAC", INVOICE_NUMBER_PAD=4)
        assert invoice.number == "INV-2024-000001"


class TestCollision:
    def test_duplicate_number_raises_retryable_collision(self, db_session):
        # A row already holds the number the counter is about to hand out
        db_session.add(InvoiceSequence(name="invoice", next_number=1))
        db_session.add(Invoice(number="FAC-2024-0001", total=0, created_at=datetime(2024, 1, 1)))
        db_session.commit()

        with pytest.raises(NumberingCollision) as exc:
            invoice_service.create_invoice(items=_items(), now=datetime(2024, 1, 1))

        assert exc.value.retryable is True
        assert exc.value.details["number"] == "FAC-2024-0001"
        assert db.session.query(Invoice).count() == 1

    def test_is_number_collision_matches_constraint_message(self):
        class _Orig(Exception):
            pass

        class _Exc(Exception):
            orig = _Orig("UNIQUE constraint failed: invoices.number")

        assert is_number_collision(_Exc())
        _Exc.orig = _Orig("UNIQUE constraint failed: users.email")
        assert not is_number_collision(_Exc())


class TestCounterRowRace:
    def test_counter_inserted_concurrently_falls_back_to_update(self, db_session, monkeypatch):
        def count_while_another_writer_inserts():
            db.session.execute(insert(InvoiceSequence).values(name="invoice", next_number=8))
            db.session.commit()
            return 0

        monkeypatch.setattr(numbering, "_stored_invoice_count", count_while_another_writer_inserts)

        assert numbering.next_sequence() == 8
        assert db.session.query(InvoiceSequence.next_number).scalar() == 9
        assert db.session.query(InvoiceSequence).count() == 1
