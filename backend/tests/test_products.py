"""
Product catalog: CRUD, validation and default seeding.
"""

import pytest

from factures.extensions import db
from factures.models import Product
from factures.services import products_service
from factures.services.products_service import DEFAULT_CATALOG, ProductNotFound
from factures.validation import ValidationError


class TestProductRoutes:
    def test_create_and_list(self, client, user_headers):
        resp = client.post(
            "/api/products",
            json={"name": "  Sauce tomate ", "price": "6500", "unit": "boîte"},
            headers=user_headers,
        )
        assert resp.status_code == 201
        product = resp.get_json()["product"]
        assert product["name"] == "Sauce tomate"
        assert product["price"] == 6500

        listing = client.get("/api/products", headers=user_headers).get_json()
        assert listing["count"] == 1
        assert listing["items"][0]["unit"] == "boîte"

    def test_zero_price_allowed(self, client, user_headers):
        resp = client.post("/api/products", json={"name": "Eau", "price": 0, "unit": "verre"}, headers=user_headers)
        assert resp.status_code == 201

    @pytest.mark.parametrize(
        "payload",
        [
            {"price": 100, "unit": "pot"},
            {"name": "Sel", "unit": "paquet"},
            {"name": "Sel", "price": 900},
            {"name": "Sel", "price": -1, "unit": "paquet"},
            {"name": "Sel", "price": "neuf cents", "unit": "paquet"},
        ],
    )
    def test_create_validation(self, client, user_headers, payload):
        resp = client.post("/api/products", json=payload, headers=user_headers)
        assert resp.status_code == 400
        assert db.session.query(Product).count() == 0

    def test_update(self, client, user_headers, ketchup):
        resp = client.put(
            f"/api/products/{ketchup.id}",
            json={"name": "Ketchup", "price": 4500, "unit": "bouteille"},
            headers=user_headers,
        )
        assert resp.status_code == 200
        assert resp.get_json()["product"]["price"] == 4500

    def test_update_missing(self, client, user_headers):
        resp = client.put("/api/products/999", json={"name": "X", "price": 1, "unit": "u"}, headers=user_headers)
        assert resp.status_code == 404

    def test_delete(self, client, user_headers, ketchup):
        assert client.delete(f"/api/products/{ketchup.id}", headers=user_headers).status_code == 200
        assert client.delete(f"/api/products/{ketchup.id}", headers=user_headers).status_code == 404

    def test_search(self, client, user_headers, ketchup, mayonnaise):
        listing = client.get("/api/products?search=MAYO", headers=user_headers).get_json()
        assert [p["name"] for p in listing["items"]] == ["Mayonnaise"]


class TestSeeding:
    def test_default_catalog_shape(self):
        assert len(DEFAULT_CATALOG) == 28
        assert all(price > 0 for _, price, _ in DEFAULT_CATALOG)

    def test_empty_catalog_seeded_on_first_read(self, app, db_session):
        app.config["SEED_CATALOG_ON_EMPTY"] = True
        try:
            products = products_service.list_products()
            again = products_service.list_products()
        finally:
            app.config["SEED_CATALOG_ON_EMPTY"] = False

        assert len(products) == 28
        assert len(again) == 28
        assert products[0].name == "Mayonnaise"

    def test_no_seed_when_disabled(self, db_session):
        assert products_service.list_products() == []

    def test_seed_replace(self, db_session, ketchup):
        products_service.seed_default_catalog(replace=True)
        assert db.session.query(Product).count() == 28


class TestProductService:
    def test_get_missing(self, db_session):
        with pytest.raises(ProductNotFound):
            products_service.get_product(1)

    def test_name_too_long(self, db_session):
        with pytest.raises(ValidationError):
            products_service.create_product({"name": "x" * 256, "price": 1, "unit": "u"})

    def test_price_rounded(self, db_session):
        product = products_service.create_product({"name": "Thé", "price": "299,5", "unit": "verre"})
        assert product.price == 300
