from __future__ import annotations

from ..extensions import db
from factures.time_utils import to_utc_z


INVOICE_STATUS_PENDING = "PENDING"
INVOICE_STATUS_PAID = "PAID"
INVOICE_STATUSES = (INVOICE_STATUS_PENDING, INVOICE_STATUS_PAID)


class Invoice(db.Model):
    """
    Restaurant invoice.

    `number` is minted once at creation and never changes. `total` is always
    the reconciliation of the current items and adjustments; it is written
    by the invoice service only.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("number", name="uq_invoices_number"),
        db.Index("ix_invoices_status_created", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "FAC-2024-0001")
    number = db.Column(db.String(32), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=INVOICE_STATUS_PENDING, index=True)

    # Reconciled total in whole FCFA
    total = db.Column(db.Integer, nullable=False, default=0)

    table_number = db.Column(db.String(32), nullable=False, default="")
    notes = db.Column(db.Text, nullable=False, default="")

    # Creation date doubles as the invoice date
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    created_by_user_id = db.Column(
        db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    items = db.relationship(
        "InvoiceItem",
        back_populates="invoice",
        order_by="InvoiceItem.position",
        cascade="all, delete-orphan",
    )
    adjustments = db.relationship(
        "InvoiceAdjustment",
        back_populates="invoice",
        order_by="InvoiceAdjustment.id",
        cascade="all, delete-orphan",
    )
    created_by = db.relationship("User", backref=db.backref("invoices", lazy=True))

    def to_dict(self, include_adjustments: bool = True) -> dict:
        data = {
            "id": self.id,
            "number": self.number,
            "date": to_utc_z(self.created_at),
            "status": self.status,
            "total": self.total,
            "table_number": self.table_number,
            "notes": self.notes,
            "items": [item.to_dict() for item in self.items],
            "created_by": self.created_by.to_summary() if self.created_by else None,
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_adjustments:
            data["adjustments"] = [adj.to_dict() for adj in self.adjustments]
        return data


class InvoiceItem(db.Model):
    """Priced line on an invoice. `total` is unit_price * quantity."""
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(
        db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = db.Column(db.Integer, nullable=False, default=0)

    # Null for ad-hoc items and for products deleted from the catalog
    product_id = db.Column(
        db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    product_name = db.Column(db.String(255), nullable=False)

    unit_price = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total = db.Column(db.Integer, nullable=False)

    invoice = db.relationship("Invoice", back_populates="items")
    product = db.relationship(
        "Product", backref=db.backref("invoice_items", lazy=True)
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "total": self.total,
        }


class InvoiceAdjustment(db.Model):
    """
    Credit or deduction attached to an invoice.

    kind "credit" adds to the total, "deduction" subtracts from it.
    """
    __tablename__ = "invoice_adjustments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(
        db.Integer, db.ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind = db.Column(db.String(16), nullable=False)
    label = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    invoice = db.relationship("Invoice", back_populates="adjustments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "kind": self.kind,
            "label": self.label,
            "amount": self.amount,
            "created_at": to_utc_z(self.created_at),
        }


class InvoiceSequence(db.Model):
    """
    Global invoice counter.

    One row per sequence name. `next_number` is bumped with a single UPDATE
    in the same transaction as the invoice insert.
    """
    __tablename__ = "invoice_sequences"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_invoice_sequences_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now()
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "next_number": self.next_number,
            "updated_at": to_utc_z(self.updated_at),
        }
