# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product catalog routes.

Any signed-in user may read and edit the catalog.
"""
from flask import Blueprint, request, jsonify

from ..services import products_service
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - search: str (optional) - case-insensitive name filter
    """
    products = products_service.list_products(search=request.args.get("search"))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@require_auth
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(payload)
    except ValidationError as e:
        return {"error": str(e), "details": e.details}, 400
    return {"product": product.to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(product_id, payload)
    except ValidationError as e:
        return {"error": str(e), "details": e.details}, 400
    except NotFoundError:
        return {"error": "Product not found"}, 404
    return {"product": product.to_dict()}, 200


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
    except NotFoundError:
        return {"error": "Product not found"}, 404
    return {"ok": True}, 200
