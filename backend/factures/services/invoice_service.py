"""
Invoice Service - creation, full edit, status and adjustments

Every write path rebuilds the Line Item Ledger and the Adjustment Ledger
from what it is about to persist and stores their reconciliation as
Invoice.total. A total sent by the client is never read.

Input is validated completely before anything is added to the session, so
a rejected request writes nothing.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Invoice, InvoiceItem, InvoiceAdjustment, Product
from ..models.invoices import INVOICE_STATUS_PENDING, INVOICE_STATUS_PAID, INVOICE_STATUSES
from ..validation import (
    ValidationError,
    NotFoundError,
    optional_text,
    parse_positive_int,
    MAX_AMOUNT,
    MAX_QUANTITY,
    NAME_MAX_LENGTH,
    TABLE_NUMBER_MAX_LENGTH,
)
from factures.time_utils import utcnow
from .money import Money, InvalidAmount, parse_money
from .line_items import LineItem, LineItemLedger
from .adjustments import Adjustment, AdjustmentKind, AdjustmentLedger, Breakdown, InvalidAdjustment
from .numbering import allocate_invoice_number, is_number_collision, NumberingCollision
from .concurrency import lock_invoice, run_invoice_write


class InvoiceError(Exception):
    """Raised for invoice operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class EmptyInvoice(InvoiceError):
    """An invoice needs at least one item."""


class InvoiceNotFound(NotFoundError):
    pass


# =============================================================================
# Payload -> ledgers
# =============================================================================

def _parse_item_price(raw, field: str, product: Product | None) -> Money:
    value = raw.get("unit_price")
    if value is None:
        if product is not None:
            return Money(product.price)
        raise ValidationError(f"{field}.unit_price is required", details={"field": f"{field}.unit_price"})
    try:
        return parse_money(value, field=f"{field}.unit_price")
    except InvalidAmount as exc:
        raise ValidationError(str(exc), details=exc.details)


def build_line_items(items_payload) -> LineItemLedger:
    """
    Build a ledger from request items.

    Each item is {product_id?, product_name?, unit_price?, quantity}.
    Catalog items merge by product; items without product_id are ad-hoc and
    always get their own line. Name and price default to the catalog's.
    Any "total" key is ignored.
    """
    if items_payload is None:
        items_payload = []
    if not isinstance(items_payload, list):
        raise ValidationError("items must be a list", details={"field": "items"})

    ledger = LineItemLedger()
    for index, raw in enumerate(items_payload):
        field = f"items[{index}]"
        if not isinstance(raw, dict):
            raise ValidationError(f"{field} must be an object", details={"field": field})

        product = None
        product_id = raw.get("product_id")
        if product_id not in (None, ""):
            product_id = parse_positive_int(product_id, f"{field}.product_id")
            product = db.session.get(Product, product_id)
            if product is None:
                raise NotFoundError(
                    f"Product {product_id} not found",
                    details={"field": f"{field}.product_id", "product_id": product_id},
                )
        else:
            product_id = None

        quantity = parse_positive_int(raw.get("quantity", 1), f"{field}.quantity", maximum=MAX_QUANTITY)

        name = raw.get("product_name")
        name = name.strip() if isinstance(name, str) else ""
        if not name and product is not None:
            name = product.name
        if not name:
            raise ValidationError(f"{field}.product_name is required", details={"field": f"{field}.product_name"})
        if len(name) > NAME_MAX_LENGTH:
            raise ValidationError(
                f"{field}.product_name must be at most {NAME_MAX_LENGTH} characters",
                details={"field": f"{field}.product_name"},
            )

        unit_price = _parse_item_price(raw, field, product)
        ledger.add_or_increment(product_id, name, unit_price, quantity)

    _check_line_bounds(ledger)
    return ledger


def build_adjustments(adjustments_payload) -> AdjustmentLedger:
    """Each entry is {label, amount, kind}; kind defaults to deduction."""
    if adjustments_payload is None:
        adjustments_payload = []
    if not isinstance(adjustments_payload, list):
        raise InvalidAdjustment("adjustments must be a list", details={"field": "adjustments"})

    ledger = AdjustmentLedger()
    for index, raw in enumerate(adjustments_payload):
        if not isinstance(raw, dict):
            raise InvalidAdjustment(
                f"adjustments[{index}] must be an object", details={"field": f"adjustments[{index}]"}
            )
        try:
            ledger.add(Adjustment.build(raw.get("label"), raw.get("amount"), raw.get("kind")))
        except InvalidAdjustment as exc:
            raise InvalidAdjustment(str(exc), details={**exc.details, "index": index})
    _check_adjustment_bounds(ledger)
    return ledger


def _check_line_bounds(ledger: LineItemLedger) -> None:
    """Merged lines and their sum must stay within the stored column range."""
    for item in ledger:
        if item.quantity > MAX_QUANTITY:
            raise ValidationError(
                f"{item.product_name}: quantity must be at most {MAX_QUANTITY}",
                details={"field": "items", "product_name": item.product_name},
            )
        if item.total.amount > MAX_AMOUNT:
            raise ValidationError(
                f"{item.product_name}: line total exceeds maximum allowed ({MAX_AMOUNT})",
                details={"field": "items", "product_name": item.product_name},
            )
    if ledger.subtotal().amount > MAX_AMOUNT:
        raise ValidationError(
            f"subtotal exceeds maximum allowed ({MAX_AMOUNT})", details={"field": "items"}
        )


def _check_adjustment_bounds(ledger: AdjustmentLedger) -> None:
    for kind, total in (("credit", ledger.credit_total()), ("deduction", ledger.deduction_total())):
        if total.amount > MAX_AMOUNT:
            raise InvalidAdjustment(
                f"{kind} total exceeds maximum allowed ({MAX_AMOUNT})",
                details={"field": "adjustments", "kind": kind},
            )


def _check_total(lines: LineItemLedger, adjustments: AdjustmentLedger) -> None:
    # Subtotal is already bounded, so only credits can push the total over.
    if adjustments.reconcile(lines.subtotal()).amount > MAX_AMOUNT:
        raise InvalidAdjustment(
            f"invoice total exceeds maximum allowed ({MAX_AMOUNT})",
            details={"field": "adjustments"},
        )


def ledgers_for(invoice: Invoice) -> tuple[LineItemLedger, AdjustmentLedger]:
    """Ledgers over the invoice's current rows."""
    lines = LineItemLedger(
        LineItem(
            ref=f"item-{row.id}",
            product_id=row.product_id,
            product_name=row.product_name,
            unit_price=Money(row.unit_price),
            quantity=row.quantity,
        )
        for row in invoice.items
    )
    adjustments = AdjustmentLedger(
        Adjustment(label=row.label, amount=Money(row.amount), kind=AdjustmentKind(row.kind), id=row.id)
        for row in invoice.adjustments
    )
    return lines, adjustments


def invoice_breakdown(invoice: Invoice) -> Breakdown:
    lines, adjustments = ledgers_for(invoice)
    return adjustments.breakdown(lines.subtotal())


def recalculate_total(invoice: Invoice) -> Money:
    lines, adjustments = ledgers_for(invoice)
    total = adjustments.reconcile(lines.subtotal())
    invoice.total = total.amount
    return total


def _replace_contents(invoice: Invoice, lines: LineItemLedger, adjustments: AdjustmentLedger) -> None:
    invoice.items = [
        InvoiceItem(
            position=position,
            product_id=item.product_id,
            product_name=item.product_name,
            unit_price=item.unit_price.amount,
            quantity=item.quantity,
            total=item.total.amount,
        )
        for position, item in enumerate(lines)
    ]
    invoice.adjustments = [
        InvoiceAdjustment(kind=adj.kind.value, label=adj.label, amount=adj.amount.amount)
        for adj in adjustments
    ]
    invoice.total = adjustments.reconcile(lines.subtotal()).amount


def _metadata(table_number, notes) -> tuple[str, str]:
    return (
        optional_text({"table_number": table_number}, "table_number", max_length=TABLE_NUMBER_MAX_LENGTH),
        optional_text({"notes": notes}, "notes"),
    )


def _locked_invoice(invoice_id: int) -> Invoice:
    invoice = lock_invoice(invoice_id)
    if not invoice:
        raise InvoiceNotFound(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
    return invoice


# =============================================================================
# Operations
# =============================================================================

def create_invoice(
    *,
    items,
    adjustments=None,
    table_number: str | None = None,
    notes: str | None = None,
    created_by_user_id: int | None = None,
    now: datetime | None = None,
) -> Invoice:
    """
    Create a PENDING invoice with a freshly minted number.

    Raises EmptyInvoice when no items are given, ValidationError /
    InvalidAdjustment for bad input, NumberingCollision if the number was
    taken concurrently.
    """
    if not items:
        raise EmptyInvoice("Cannot create an invoice without items")

    lines = build_line_items(items)
    adjustment_ledger = build_adjustments(adjustments)
    _check_total(lines, adjustment_ledger)
    table_number, notes = _metadata(table_number, notes)

    def _op():
        created_at = now or utcnow()
        number = allocate_invoice_number(created_at)

        invoice = Invoice(
            number=number,
            status=INVOICE_STATUS_PENDING,
            table_number=table_number,
            notes=notes,
            created_by_user_id=created_by_user_id,
            created_at=created_at,
        )
        _replace_contents(invoice, lines, adjustment_ledger)
        db.session.add(invoice)

        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            if is_number_collision(exc):
                current_app.logger.warning("Invoice number %s already taken", number)
                raise NumberingCollision(
                    "Invoice number already allocated, retry the request",
                    details={"number": number, "retryable": True},
                )
            raise
        return invoice

    invoice = run_invoice_write(_op, action="create invoice")
    current_app.logger.info("Created invoice %s (total=%s)", invoice.number, invoice.total)
    return invoice


def edit_invoice(
    invoice_id: int,
    *,
    items,
    adjustments=None,
    table_number: str | None = None,
    notes: str | None = None,
) -> Invoice:
    """
    Full edit: items and adjustments are replaced, not merged, and the total
    is recomputed from them. Number, date, status and creator are kept.
    """
    def _op():
        invoice = _locked_invoice(invoice_id)

        lines = build_line_items(items)
        if not lines:
            raise EmptyInvoice("An invoice must keep at least one item")
        adjustment_ledger = build_adjustments(adjustments)
        _check_total(lines, adjustment_ledger)
        invoice.table_number, invoice.notes = _metadata(table_number, notes)

        _replace_contents(invoice, lines, adjustment_ledger)
        db.session.commit()
        return invoice

    return run_invoice_write(_op, action="edit invoice")


def set_status(invoice_id: int, status) -> Invoice:
    normalized = str(status or "").strip().upper()
    if normalized not in INVOICE_STATUSES:
        raise ValidationError(
            f"status must be one of: {', '.join(INVOICE_STATUSES)}", details={"field": "status"}
        )

    def _op():
        invoice = _locked_invoice(invoice_id)
        invoice.status = normalized
        db.session.commit()
        return invoice

    return run_invoice_write(_op, action="set invoice status")


def toggle_status(invoice_id: int) -> Invoice:
    """PENDING <-> PAID, unconditionally."""
    def _op():
        invoice = _locked_invoice(invoice_id)
        invoice.status = INVOICE_STATUS_PENDING if invoice.status == INVOICE_STATUS_PAID else INVOICE_STATUS_PAID
        db.session.commit()
        return invoice

    return run_invoice_write(_op, action="toggle invoice status")


def add_adjustment(invoice_id: int, *, label, amount, kind=None) -> Invoice:
    adjustment = Adjustment.build(label, amount, kind)

    def _op():
        invoice = _locked_invoice(invoice_id)
        lines, adjustments = ledgers_for(invoice)
        adjustments.add(adjustment)
        _check_adjustment_bounds(adjustments)
        _check_total(lines, adjustments)

        invoice.adjustments.append(
            InvoiceAdjustment(kind=adjustment.kind.value, label=adjustment.label, amount=adjustment.amount.amount)
        )
        db.session.flush()
        recalculate_total(invoice)
        db.session.commit()
        return invoice

    return run_invoice_write(_op, action="add adjustment")


def remove_adjustment(invoice_id: int, adjustment_id: int) -> Invoice:
    """Removing an adjustment that is already gone leaves the invoice as is."""
    def _op():
        invoice = _locked_invoice(invoice_id)
        remaining = [adj for adj in invoice.adjustments if adj.id != adjustment_id]
        if len(remaining) != len(invoice.adjustments):
            invoice.adjustments = remaining
            db.session.flush()
        recalculate_total(invoice)
        db.session.commit()
        return invoice

    return run_invoice_write(_op, action="remove adjustment")


def delete_invoice(invoice_id: int) -> None:
    """Hard delete; items and adjustments go with it."""
    def _op():
        invoice = _locked_invoice(invoice_id)
        number = invoice.number
        db.session.delete(invoice)
        db.session.commit()
        return number

    number = run_invoice_write(_op, action="delete invoice")
    current_app.logger.info("Deleted invoice %s", number)


def get_invoice(invoice_id: int) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if not invoice:
        raise InvoiceNotFound(f"Invoice {invoice_id} not found", details={"invoice_id": invoice_id})
    return invoice


def list_invoices(status: str | None = None) -> list[Invoice]:
    query = db.session.query(Invoice)
    if status:
        normalized = status.strip().upper()
        if normalized not in INVOICE_STATUSES:
            raise ValidationError(
                f"status must be one of: {', '.join(INVOICE_STATUSES)}", details={"field": "status"}
            )
        query = query.filter(Invoice.status == normalized)
    return query.order_by(Invoice.created_at.asc(), Invoice.id.asc()).all()


def invoice_summary() -> dict:
    """Counts by status and revenue (sum of totals of PAID invoices)."""
    rows = (
        db.session.query(Invoice.status, db.func.count(Invoice.id), db.func.coalesce(db.func.sum(Invoice.total), 0))
        .group_by(Invoice.status)
        .all()
    )
    counts = {status: 0 for status in INVOICE_STATUSES}
    totals = {status: 0 for status in INVOICE_STATUSES}
    for status, count, total in rows:
        counts[status] = count
        totals[status] = int(total)

    return {
        "invoice_count": sum(counts.values()),
        "pending_count": counts[INVOICE_STATUS_PENDING],
        "paid_count": counts[INVOICE_STATUS_PAID],
        "revenue": totals[INVOICE_STATUS_PAID],
        "outstanding": totals[INVOICE_STATUS_PENDING],
    }


def serialize_invoice(invoice: Invoice) -> dict:
    data = invoice.to_dict()
    breakdown = invoice_breakdown(invoice)
    data["subtotal"] = breakdown.subtotal.amount
    data["credit_total"] = breakdown.credit_total.amount
    data["deduction_total"] = breakdown.deduction_total.amount
    return data
