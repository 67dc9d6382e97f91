# Overview: Receipt breakdown and the plain-text message used to share an invoice.

from __future__ import annotations

from flask import current_app

from ..models import Invoice
from factures.time_utils import format_fr_date
from .money import format_fcfa
from .invoice_service import invoice_breakdown


def receipt(invoice: Invoice) -> dict:
    """Header fields plus the ordered breakdown lines."""
    breakdown = invoice_breakdown(invoice)
    return {
        "invoice_id": invoice.id,
        "number": invoice.number,
        "date": format_fr_date(invoice.created_at),
        "table_number": invoice.table_number or None,
        "status": invoice.status,
        "items": [
            {
                "product_name": item.product_name,
                "quantity": item.quantity,
                "unit_price": item.unit_price,
                "total": item.total,
                "display": f"{item.product_name} x {item.quantity} = {format_fcfa(item.total)}",
            }
            for item in invoice.items
        ],
        "is_adjusted": breakdown.is_adjusted,
        **breakdown.to_dict(),
    }


def share_text(invoice: Invoice) -> str:
    """
    Message for messaging apps:

        FactuResto - Facture *FAC-2024-0001*
        Date : 05/03/2024
        Table N° 4

        • Ketchup × 2 = 8 000 FCFA

        *Total : 8 000 FCFA*
    """
    restaurant = current_app.config.get("RESTAURANT_NAME", "FactuResto")
    lines = [
        f"{restaurant} - Facture *{invoice.number}*",
        f"Date : {format_fr_date(invoice.created_at)}",
    ]
    if invoice.table_number:
        lines.append(f"Table N° {invoice.table_number}")
    lines.append("")
    lines.extend(
        f"• {item.product_name} × {item.quantity} = {format_fcfa(item.total)}"
        for item in invoice.items
    )
    lines.append("")
    lines.append(f"*Total : {format_fcfa(invoice.total)}*")
    return "\n".join(lines)
