"""
Catalog tests: product listing and admin management, gallery primary image,
reviews.
"""

import pytest

from storefront.extensions import db
from storefront.models import ProductImage


PRODUCT_PAYLOAD = {
    "name": "Lemon Pickle",
    "price": 99.5,
    "category": "pickles",
    "images": ["/uploads/a.jpg", "/uploads/b.jpg", "/uploads/c.jpg"],
}


def _primary_ids(product_id):
    return [
        img.id
        for img in db.session.query(ProductImage).filter_by(product_id=product_id, is_primary=True)
    ]


class TestProductListing:
    def test_public_list_and_filters(self, client, product, pricey_product):
        data = client.get("/api/products").get_json()["data"]
        assert data["pagination"]["total"] == 2

        gifts = client.get("/api/products?category=gifts").get_json()["data"]["items"]
        assert [p["name"] for p in gifts] == ["Gift Hamper"]

        found = client.get("/api/products?search=mango").get_json()["data"]["items"]
        assert [p["id"] for p in found] == [product.id]

    def test_in_stock_filter(self, client, product, pricey_product):
        pricey_product.in_stock = False
        db.session.commit()
        items = client.get("/api/products?in_stock=true").get_json()["data"]["items"]
        assert [p["id"] for p in items] == [product.id]

    def test_pagination(self, client, product, pricey_product):
        data = client.get("/api/products?limit=1&page=2").get_json()["data"]
        assert len(data["items"]) == 1
        assert data["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}

    def test_missing_product(self, client, db_session):
        resp = client.get("/api/products/12345")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Product not found", "success": False}


class TestProductAdmin:
    def test_create_with_gallery(self, client, admin_headers):
        resp = client.post("/api/products", json=PRODUCT_PAYLOAD, headers=admin_headers)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["price"] == 99.5
        assert [img["is_primary"] for img in data["images"]] == [True, False, False]
        assert data["image"] == "/uploads/a.jpg"

    @pytest.mark.parametrize(
        "patch,message",
        [
            ({"price": 0}, "Price must be greater than 0"),
            ({"price": "abc"}, "Price must be a number"),
            ({"name": ""}, "Name is required"),
        ],
    )
    def test_create_rejects(self, client, admin_headers, patch, message):
        resp = client.post("/api/products", json={**PRODUCT_PAYLOAD, **patch}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == message

    def test_partial_update(self, client, product, admin_headers):
        resp = client.put(f"/api/products/{product.id}", json={"featured": True}, headers=admin_headers)
        data = resp.get_json()["data"]
        assert data["featured"] is True
        assert data["price"] == 120.0

    def test_set_primary_image(self, client, admin_headers):
        created = client.post("/api/products", json=PRODUCT_PAYLOAD, headers=admin_headers).get_json()["data"]
        third = created["images"][2]

        resp = client.post(
            f"/api/products/{created['id']}/images/{third['id']}/primary", headers=admin_headers
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["image"] == "/uploads/c.jpg"

        db.session.expire_all()
        assert _primary_ids(created["id"]) == [third["id"]]

    def test_primary_image_of_other_product(self, client, product, admin_headers):
        created = client.post("/api/products", json=PRODUCT_PAYLOAD, headers=admin_headers).get_json()["data"]
        image_id = created["images"][1]["id"]

        resp = client.post(f"/api/products/{product.id}/images/{image_id}/primary", headers=admin_headers)
        assert resp.status_code == 404

        db.session.expire_all()
        assert _primary_ids(created["id"]) == [created["images"][0]["id"]]

    def test_delete_ordered_product_conflicts(self, client, product, address, customer_headers, admin_headers):
        client.post(
            "/api/orders",
            json={"items": [{"product_id": product.id, "quantity": 1}], "address_id": address.id,
                  "payment_method": "cod"},
            headers=customer_headers,
        )
        resp = client.delete(f"/api/products/{product.id}", headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_unordered_product(self, client, product, admin_headers):
        assert client.delete(f"/api/products/{product.id}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/products/{product.id}").status_code == 404


class TestReviews:
    def test_one_review_per_customer(self, client, product, customer_headers):
        path = f"/api/products/{product.id}/reviews"
        first = client.post(path, json={"rating": 5, "comment": "Lovely"}, headers=customer_headers)
        assert first.status_code == 201

        second = client.post(path, json={"rating": 4}, headers=customer_headers)
        assert second.status_code == 409
        assert second.get_json()["error"] == "You have already reviewed this product"

        reviews = client.get(path).get_json()["data"]
        assert [r["rating"] for r in reviews] == [5]

        detail = client.get(f"/api/products/{product.id}").get_json()["data"]
        assert (detail["average_rating"], detail["review_count"]) == (5, 1)

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, client, product, customer_headers, rating):
        resp = client.post(f"/api/products/{product.id}/reviews", json={"rating": rating}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Rating must be between 1 and 5"

    def test_admin_sees_all_reviews_with_names(
        self, client, product, pricey_product, customer_headers, other_headers, admin_headers
    ):
        client.post(f"/api/products/{product.id}/reviews", json={"rating": 5}, headers=customer_headers)
        client.post(f"/api/products/{pricey_product.id}/reviews", json={"rating": 3, "comment": "Ok"},
                    headers=other_headers)

        resp = client.get("/api/admin/reviews", headers=admin_headers)
        assert resp.status_code == 200
        reviews = resp.get_json()["data"]
        assert [(r["user"]["name"], r["product"]["name"]) for r in reviews] == [
            ("Ravi", "Gift Hamper"),
            ("Asha", "Mango Pickle"),
        ]
