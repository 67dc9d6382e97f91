# Overview: Flask API routes for invoice operations; parses input and returns JSON responses.

"""
Invoice routes.

Totals are always computed server-side; a "total" in a request body is
ignored.
"""

from functools import wraps

from flask import Blueprint, request, jsonify, g, current_app, Response

from ..services import invoice_service, receipt_service
from ..services.invoice_service import InvoiceError
from ..services.numbering import NumberingCollision
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def handle_invoice_errors(action: str):
    """Map domain errors to JSON responses; anything else is a logged 500."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except (ValidationError, InvoiceError) as e:
                return jsonify({"error": str(e), "details": e.details}), 400
            except NotFoundError as e:
                return jsonify({"error": str(e), "details": e.details}), 404
            except NumberingCollision as e:
                return jsonify({"error": str(e), "details": e.details, "retryable": True}), 409
            except Exception:
                current_app.logger.exception("Failed to %s", action)
                return jsonify({"error": "Internal server error"}), 500
        return decorated_function
    return decorator


@invoices_bp.get("")
@require_auth
@handle_invoice_errors("list invoices")
def list_invoices_route():
    """
    Query params:
    - status: PENDING | PAID (optional)
    """
    invoices = invoice_service.list_invoices(status=request.args.get("status"))
    return jsonify({
        "invoices": [invoice.to_dict(include_adjustments=False) for invoice in invoices],
        "count": len(invoices),
    }), 200


@invoices_bp.post("")
@require_auth
@handle_invoice_errors("create invoice")
def create_invoice_route():
    """
    Body: {items: [...], adjustments?: [...], table_number?, notes?}

    The new invoice is PENDING, numbered FAC-{year}-{sequence} and
    attributed to the signed-in user.
    """
    data = request.get_json(silent=True) or {}
    invoice = invoice_service.create_invoice(
        items=data.get("items"),
        adjustments=data.get("adjustments"),
        table_number=data.get("table_number"),
        notes=data.get("notes"),
        created_by_user_id=g.current_user.id,
    )
    return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 201


@invoices_bp.get("/summary")
@require_auth
@handle_invoice_errors("load invoice summary")
def invoice_summary_route():
    return jsonify(invoice_service.invoice_summary()), 200


@invoices_bp.get("/<int:invoice_id>")
@require_auth
@handle_invoice_errors("load invoice")
def get_invoice_route(invoice_id: int):
    invoice = invoice_service.get_invoice(invoice_id)
    return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200


@invoices_bp.put("/<int:invoice_id>")
@require_auth
@handle_invoice_errors("update invoice")
def update_invoice_route(invoice_id: int):
    """
    Two shapes:
    - {items, adjustments?, table_number?, notes?}: full edit, contents replaced
    - {status}: status-only update
    """
    data = request.get_json(silent=True) or {}

    if "items" in data:
        invoice = invoice_service.edit_invoice(
            invoice_id,
            items=data.get("items"),
            adjustments=data.get("adjustments"),
            table_number=data.get("table_number"),
            notes=data.get("notes"),
        )
    elif "status" in data:
        invoice = invoice_service.set_status(invoice_id, data.get("status"))
    else:
        return jsonify({"error": "items or status required"}), 400

    return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200


@invoices_bp.delete("/<int:invoice_id>")
@require_auth
@handle_invoice_errors("delete invoice")
def delete_invoice_route(invoice_id: int):
    invoice_service.delete_invoice(invoice_id)
    return jsonify({"ok": True}), 200


@invoices_bp.post("/<int:invoice_id>/toggle-status")
@require_auth
@handle_invoice_errors("toggle invoice status")
def toggle_status_route(invoice_id: int):
    invoice = invoice_service.toggle_status(invoice_id)
    return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200


@invoices_bp.post("/<int:invoice_id>/adjustments")
@require_auth
@handle_invoice_errors("add adjustment")
def add_adjustment_route(invoice_id: int):
    """Body: {label, amount, kind?}. kind is "credit" or "deduction" (default)."""
    data = request.get_json(silent=True) or {}
    invoice = invoice_service.add_adjustment(
        invoice_id,
        label=data.get("label"),
        amount=data.get("amount"),
        kind=data.get("kind"),
    )
    return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 201


@invoices_bp.delete("/<int:invoice_id>/adjustments/<int:adjustment_id>")
@require_auth
@handle_invoice_errors("remove adjustment")
def remove_adjustment_route(invoice_id: int, adjustment_id: int):
    invoice = invoice_service.remove_adjustment(invoice_id, adjustment_id)
    return jsonify({"invoice": invoice_service.serialize_invoice(invoice)}), 200


@invoices_bp.get("/<int:invoice_id>/breakdown")
@require_auth
@handle_invoice_errors("load invoice breakdown")
def breakdown_route(invoice_id: int):
    invoice = invoice_service.get_invoice(invoice_id)
    return jsonify({"receipt": receipt_service.receipt(invoice)}), 200


@invoices_bp.get("/<int:invoice_id>/share-text")
@require_auth
@handle_invoice_errors("build share text")
def share_text_route(invoice_id: int):
    invoice = invoice_service.get_invoice(invoice_id)
    return Response(receipt_service.share_text(invoice), mimetype="text/plain; charset=utf-8")
