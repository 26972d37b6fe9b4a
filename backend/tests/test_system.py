"""
Response envelope and transaction-runner tests.
"""

import pytest
from sqlalchemy.exc import OperationalError

from storefront.errors import Conflict, InternalError, InvalidInput
from storefront.extensions import db
from storefront.models import Product
from storefront.services.transactions import run_in_transaction


class TestEnvelope:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"data": {"status": "ok"}, "success": True}

    def test_health_db(self, client, db_session):
        assert client.get("/health/db").get_json()["data"]["database"] == "reachable"

    def test_unknown_route_is_enveloped(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        body = resp.get_json()
        assert body["success"] is False
        assert "error" in body

    def test_non_object_json_rejected(self, client, customer_headers):
        resp = client.post("/api/addresses", data="[1, 2]", content_type="application/json",
                           headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Invalid JSON payload", "success": False}

    def test_cors_allowed_origin(self, client):
        resp = client.get("/health", headers={"Origin": "http://localhost:3000"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:3000"

    def test_cors_unknown_origin(self, client):
        resp = client.get("/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers


def _add_product(name):
    def _step(ctx):
        product = Product(name=name, price=10, category="test")
        db.session.add(product)
        ctx.setdefault("names", []).append(name)
        return product
    return _step


class TestRunInTransaction:
    def test_commits_all_steps(self, app, db_session):
        result = run_in_transaction(_add_product("A"), _add_product("B"))
        assert result.name == "B"
        assert db.session.query(Product).count() == 2

    def test_api_error_rolls_back_earlier_steps(self, app, db_session):
        def _fail(ctx):
            raise InvalidInput("nope")

        with pytest.raises(InvalidInput):
            run_in_transaction(_add_product("A"), _fail)
        assert db.session.query(Product).count() == 0

    def test_unexpected_error_becomes_internal(self, app, db_session):
        def _boom(ctx):
            raise RuntimeError("disk on fire")

        with pytest.raises(InternalError):
            run_in_transaction(_add_product("A"), _boom)
        assert db.session.query(Product).count() == 0

    def test_integrity_error_becomes_conflict(self, app, db_session, customer, password_hash):
        from storefront.models import User

        def _duplicate(ctx):
            db.session.add(User(email=customer.email, name="Dup", password_hash=password_hash))

        with pytest.raises(Conflict):
            run_in_transaction(_duplicate)

    def test_transient_failure_is_retried(self, app, db_session):
        calls = []

        def _flaky(ctx):
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError("UPDATE", {}, Exception("database is locked"))
            return "ok"

        assert run_in_transaction(_flaky) == "ok"
        assert len(calls) == 2
