"""
Online payment tests: gateway order creation and the verification state
machine (pending -> paid | failed, retry back to pending).
"""

import pytest

from storefront.errors import UpstreamFailure
from storefront.extensions import db
from storefront.models import Order, PaymentConfig
from storefront.services.payment_service import compute_signature, signature_matches, to_minor_units


KEY_ID = "rzp_test_abc123"
KEY_SECRET = "s3cr3t-key-for-tests"


@pytest.fixture
def gateway_keys(db_session):
    db_session.add(PaymentConfig(razorpay_key_id=KEY_ID, razorpay_key_secret=KEY_SECRET))
    db_session.commit()


@pytest.fixture
def online_order(client, product, address, customer_headers):
    resp = client.post(
        "/api/orders",
        json={
            "items": [{"product_id": product.id, "quantity": 1}],
            "address_id": address.id,
            "payment_method": "online",
        },
        headers=customer_headers,
    )
    return resp.get_json()["data"]["order"]


def _open_gateway_order(client, headers, order):
    resp = client.post("/api/payment/create-order", json={"order_id": order["id"]}, headers=headers)
    assert resp.status_code == 200
    return resp.get_json()["data"]


def _verify(client, headers, order, gateway_order_id, payment_id, signature):
    return client.post(
        "/api/payment/verify",
        json={
            "razorpay_order_id": gateway_order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
            "order_id": order["id"],
        },
        headers=headers,
    )


# =============================================================================
# SIGNATURES
# =============================================================================


class TestSignature:
    def test_matches_own_signature(self):
        sig = compute_signature(KEY_SECRET, "order_1", "pay_1")
        assert len(sig) == 64
        assert signature_matches(KEY_SECRET, "order_1", "pay_1", sig)

    @pytest.mark.parametrize(
        "order_id,payment_id",
        [("order_2", "pay_1"), ("order_1", "pay_2")],
    )
    def test_any_changed_part_fails(self, order_id, payment_id):
        sig = compute_signature(KEY_SECRET, "order_1", "pay_1")
        assert not signature_matches(KEY_SECRET, order_id, payment_id, sig)

    def test_minor_units(self):
        assert to_minor_units("170.00") == 17000
        assert to_minor_units("99.995") == 10000


# =============================================================================
# GATEWAY ORDER
# =============================================================================


class TestCreateGatewayOrder:
    def test_not_configured(self, client, online_order, customer_headers):
        resp = client.post("/api/payment/create-order", json={"order_id": online_order["id"]},
                           headers=customer_headers)
        assert resp.status_code == 400
        assert "Payment gateway not configured" in resp.get_json()["error"]

    def test_creates_and_stores_gateway_order(self, client, fakes, gateway_keys, online_order, customer_headers):
        data = _open_gateway_order(client, customer_headers, online_order)
        assert data["razorpay_order_id"] == "order_test_1"
        assert data["razorpay_key_id"] == KEY_ID
        assert data["amount"] == 17000
        assert data["currency"] == "INR"

        key_id, key_secret, _gateway_order, receipt = fakes.payments.orders[0]
        assert (key_id, key_secret, receipt) == (KEY_ID, KEY_SECRET, str(online_order["id"]))
        assert db.session.get(Order, online_order["id"]).gateway_order_id == "order_test_1"

    def test_gateway_failure_surfaces_as_upstream(self, client, fakes, gateway_keys, online_order, customer_headers):
        fakes.payments.fail_with = UpstreamFailure("Failed to create payment order")
        resp = client.post("/api/payment/create-order", json={"order_id": online_order["id"]},
                           headers=customer_headers)
        assert resp.status_code == 502
        assert db.session.get(Order, online_order["id"]).gateway_order_id is None

    def test_other_customers_order(self, client, gateway_keys, online_order, other_headers):
        resp = client.post("/api/payment/create-order", json={"order_id": online_order["id"]},
                           headers=other_headers)
        assert resp.status_code == 404

    def test_missing_order_id(self, client, gateway_keys, customer_headers):
        resp = client.post("/api/payment/create-order", json={}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Order ID is required"


# =============================================================================
# VERIFICATION STATE MACHINE
# =============================================================================


class TestVerify:
    def test_valid_signature_marks_paid(self, client, gateway_keys, online_order, customer_headers):
        gateway = _open_gateway_order(client, customer_headers, online_order)
        gateway_order_id = gateway["razorpay_order_id"]
        signature = compute_signature(KEY_SECRET, gateway_order_id, "pay_001")

        resp = _verify(client, customer_headers, online_order, gateway_order_id, "pay_001", signature)
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {
            "message": "Payment verified successfully",
            "order_id": online_order["id"],
        }

        order = db.session.get(Order, online_order["id"])
        db.session.refresh(order)
        assert order.payment_status == "paid"
        assert order.status == "confirmed"
        assert order.gateway_payment_id == "pay_001"

    def test_tampered_signature_is_terminal_failure(self, client, gateway_keys, online_order, customer_headers):
        gateway = _open_gateway_order(client, customer_headers, online_order)
        gateway_order_id = gateway["razorpay_order_id"]

        resp = _verify(client, customer_headers, online_order, gateway_order_id, "pay_001", "0" * 64)
        assert resp.status_code == 400
        assert resp.get_json() == {"error": "Payment verification failed", "success": False}

        order = db.session.get(Order, online_order["id"])
        db.session.refresh(order)
        assert order.payment_status == "failed"
        assert order.status == "pending"
        assert order.gateway_payment_id == "pay_001"

        # A correct signature afterwards does not resurrect the attempt
        good = compute_signature(KEY_SECRET, gateway_order_id, "pay_001")
        again = _verify(client, customer_headers, online_order, gateway_order_id, "pay_001", good)
        assert again.status_code == 400
        assert again.get_json()["error"] == "Payment already processed"
        db.session.refresh(order)
        assert order.payment_status == "failed"

    def test_mismatched_gateway_order_id(self, client, gateway_keys, online_order, customer_headers):
        _open_gateway_order(client, customer_headers, online_order)
        forged = compute_signature(KEY_SECRET, "order_forged", "pay_001")
        resp = _verify(client, customer_headers, online_order, "order_forged", "pay_001", forged)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Payment order does not match"
        assert db.session.get(Order, online_order["id"]).payment_status == "pending"

    def test_missing_details(self, client, gateway_keys, online_order, customer_headers):
        resp = client.post("/api/payment/verify", json={"order_id": online_order["id"]},
                           headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Missing payment details"

    def test_retry_after_failure(self, client, gateway_keys, online_order, customer_headers):
        first = _open_gateway_order(client, customer_headers, online_order)
        _verify(client, customer_headers, online_order, first["razorpay_order_id"], "pay_001", "bad")

        resp = client.post("/api/payment/retry", json={"order_id": online_order["id"]}, headers=customer_headers)
        assert resp.status_code == 200
        assert resp.get_json()["data"]["order"]["payment_status"] == "pending"

        second = _open_gateway_order(client, customer_headers, online_order)
        assert second["razorpay_order_id"] != first["razorpay_order_id"]
        signature = compute_signature(KEY_SECRET, second["razorpay_order_id"], "pay_002")
        ok = _verify(client, customer_headers, online_order, second["razorpay_order_id"], "pay_002", signature)
        assert ok.status_code == 200

    def test_retry_only_from_failed(self, client, gateway_keys, online_order, customer_headers):
        resp = client.post("/api/payment/retry", json={"order_id": online_order["id"]}, headers=customer_headers)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Only failed payments can be retried"


class TestPaymentConfigEndpoints:
    def test_public_config_hides_secret(self, client, gateway_keys):
        data = client.get("/api/payment/config").get_json()["data"]
        assert data == {"razorpay_key_id": KEY_ID, "is_test_mode": True}

    def test_admin_sees_masked_secret(self, client, gateway_keys, admin_headers):
        data = client.get("/api/admin/payment-config", headers=admin_headers).get_json()["data"]
        assert data["razorpay_key_secret"].endswith("ests")
        assert KEY_SECRET not in data["razorpay_key_secret"]

    def test_admin_payment_list(self, client, gateway_keys, online_order, admin_headers):
        data = client.get("/api/admin/payments", headers=admin_headers).get_json()["data"]
        assert [o["id"] for o in data["items"]] == [online_order["id"]]
