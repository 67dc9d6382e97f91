# Overview: Service-layer operations for the product catalog.

"""
Products Service

The catalog is shared by every user. Prices are whole FCFA and may be zero.
Deleting a product does not touch invoices: their lines keep the copied
name and price, and the product reference is set to NULL.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product
from ..validation import require_text, ValidationError, NotFoundError, NAME_MAX_LENGTH, UNIT_MAX_LENGTH
from .money import parse_money, InvalidAmount


DEFAULT_CATALOG = (
    # Condiments / sauces
    ("Mayonnaise", 7000, "pot"),
    ("Ketchup", 4000, "bouteille"),
    ("Moutarde", 1300, "pot"),
    ("Sauce tomate", 6500, "boîte"),
    ("Vinaigre", 700, "bouteille"),
    ("Olive noire", 1000, "boîte"),
    # Épices / aromates
    ("Poivre", 2000, "sachet"),
    ("Sel", 900, "paquet"),
    ("Piment", 500, "sachet"),
    ("Laurier", 200, "sachet"),
    ("Adja", 150, "tablette"),
    ("Épices Adja", 250, "lot de 5"),
    ("Magi", 1600, "paquet"),
    # Féculents / bases
    ("Farine", 8500, "sac"),
    ("Pomme de terre", 10000, "sac"),
    ("Tortilla", 2500, "paquet"),
    # Produits laitiers / œufs
    ("Fromage", 7500, "portion"),
    ("Œuf", 2800, "plateau"),
    ("Chocolat", 1200, "tablette"),
    # Viandes / protéines
    ("Viande hachée", 4000, "portion"),
    ("Kani", 500, "pièce"),
    # Matières grasses
    ("Huile", 17000, "bidon"),
    # Divers alimentaires
    ("Ail", 1000, "sachet"),
    ("Soja", 1500, "sachet"),
    ("Levure", 1500, "sachet"),
    # Consommables cuisine
    ("Barquette", 2500, "paquet"),
    ("Gants", 3000, "boîte"),
    ("Papier alu", 2000, "rouleau"),
)


class ProductNotFound(NotFoundError):
    """Raised when a product id does not exist."""


def validate_product_payload(payload: dict) -> dict:
    """name, price and unit are all required, on create and on update."""
    name = require_text(payload, "name", max_length=NAME_MAX_LENGTH)
    unit = require_text(payload, "unit", max_length=UNIT_MAX_LENGTH)
    if payload.get("price") is None:
        raise ValidationError("price is required", details={"field": "price"})
    try:
        price = parse_money(payload.get("price"), field="price")
    except InvalidAmount as exc:
        raise ValidationError(str(exc), details=exc.details)
    return {"name": name, "price": price.amount, "unit": unit}


def seed_default_catalog(*, replace: bool = False) -> int:
    """
    Insert the default restaurant catalog.

    replace=True deletes the existing products first. Returns the number of
    products inserted.
    """
    if replace:
        db.session.query(Product).delete()

    for name, price, unit in DEFAULT_CATALOG:
        db.session.add(Product(name=name, price=price, unit=unit))

    db.session.commit()
    return len(DEFAULT_CATALOG)


def list_products(*, search: str | None = None) -> list[Product]:
    """
    Products in creation order.

    An empty catalog is seeded with DEFAULT_CATALOG first when
    SEED_CATALOG_ON_EMPTY is enabled.
    """
    query = db.session.query(Product)

    if current_app.config.get("SEED_CATALOG_ON_EMPTY") and query.count() == 0:
        inserted = seed_default_catalog()
        current_app.logger.info("Seeded empty catalog with %s default products", inserted)

    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))

    return query.order_by(Product.created_at.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise ProductNotFound(f"Product {product_id} not found")
    return product


def create_product(payload: dict) -> Product:
    fields = validate_product_payload(payload)
    product = Product(**fields)
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, payload: dict) -> Product:
    fields = validate_product_payload(payload)
    product = get_product(product_id)
    for key, value in fields.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    product = get_product(product_id)
    db.session.delete(product)
    db.session.commit()
