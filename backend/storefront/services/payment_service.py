# Overview: Service-layer operations for online payments; gateway orders and signature verification.

"""
Payment verification state machine.

    pending --(signature matches)--> paid      (order.status -> confirmed)
    pending --(signature mismatch)--> failed   (payment id kept for audit)

paid and failed are terminal for the attempt. A failed attempt is retried by
reset_payment_attempt, which puts the order back to pending and clears the
gateway order id so the next attempt needs a fresh gateway order.
"""

from __future__ import annotations

import hashlib
import hmac
from decimal import Decimal, ROUND_HALF_UP

from flask import current_app

from ..errors import InvalidInput, NotFound, PaymentVerificationFailed
from ..extensions import db
from ..gateways import get_gateway
from ..models import Order
from ..models.orders import PAYMENT_FAILED, PAYMENT_PAID, PAYMENT_PENDING
from ..validation import Field, Schema, paginate, validate_payload
from . import settings_service
from .transactions import atomic, lock_for_update


NOT_CONFIGURED_MESSAGE = (
    "Payment gateway not configured. Please configure Razorpay keys in Admin Settings."
)


def compute_signature(secret: str, gateway_order_id: str, gateway_payment_id: str) -> str:
    """Hex HMAC-SHA256 over '<gateway_order_id>|<gateway_payment_id>'."""
    message = f"{gateway_order_id}|{gateway_payment_id}".encode('utf-8')
    return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
    expected = compute_signature(secret, gateway_order_id, gateway_payment_id)
    return hmac.compare_digest(expected.encode('utf-8'), (signature or "").encode('utf-8'))


def to_minor_units(amount) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _owned_order(user_id: int, order_id: int, lock: bool = False) -> Order:
    query = db.session.query(Order).filter_by(id=order_id, user_id=user_id)
    if lock:
        query = lock_for_update(query)
    order = query.first()
    if order is None:
        raise NotFound("Order not found")
    return order


ORDER_REF_SCHEMA = Schema(
    fields=(Field("order_id", "int", required=True, label="Order ID"),),
    required_message="Order ID is required",
)


def create_gateway_order(user_id: int, payload: dict) -> dict:
    """
    Open a gateway order for a pending order and remember its id.

    The gateway call happens outside any transaction; only the resulting id
    is written back, and only if the order is still pending.
    """
    data = validate_payload(payload, ORDER_REF_SCHEMA)
    order = _owned_order(user_id, data["order_id"])
    if order.payment_status != PAYMENT_PENDING:
        raise InvalidInput("Payment already processed")

    keys = settings_service.resolve_gateway_keys(current_app.config)
    if keys is None:
        raise InvalidInput(NOT_CONFIGURED_MESSAGE)
    key_id, key_secret = keys

    currency = current_app.config["CURRENCY"]
    gateway_order = get_gateway("payments").create_order(
        key_id, key_secret, to_minor_units(order.total), currency, str(order.id)
    )

    def _store():
        locked = _owned_order(user_id, order.id, lock=True)
        if locked.payment_status != PAYMENT_PENDING:
            raise InvalidInput("Payment already processed")
        locked.gateway_order_id = gateway_order.gateway_order_id
        return locked

    stored = atomic(_store)
    return {
        "razorpay_order_id": gateway_order.gateway_order_id,
        "razorpay_key_id": key_id,
        "amount": gateway_order.amount,
        "currency": gateway_order.currency,
        "order": {"id": stored.id, "total": float(stored.total)},
    }


VERIFY_SCHEMA = Schema(
    fields=(
        Field("razorpay_order_id", required=True),
        Field("razorpay_payment_id", required=True),
        Field("razorpay_signature", required=True),
        Field("order_id", "int", required=True, label="Order ID"),
    ),
    required_message="Missing payment details",
)


def verify_payment(user_id: int, payload: dict) -> dict:
    """
    Check the gateway signature and move the order out of pending.

    A mismatch is committed as failed before PaymentVerificationFailed is
    raised, so the terminal state survives the error response.
    """
    data = validate_payload(payload, VERIFY_SCHEMA)

    keys = settings_service.resolve_gateway_keys(current_app.config)
    if keys is None:
        raise InvalidInput(NOT_CONFIGURED_MESSAGE)
    _key_id, key_secret = keys

    def _transition():
        order = _owned_order(user_id, data["order_id"], lock=True)
        if order.payment_status != PAYMENT_PENDING:
            raise InvalidInput("Payment already processed")
        if not order.gateway_order_id or order.gateway_order_id != data["razorpay_order_id"]:
            raise InvalidInput("Payment order does not match")

        matched = signature_matches(
            key_secret,
            data["razorpay_order_id"],
            data["razorpay_payment_id"],
            data["razorpay_signature"],
        )
        order.gateway_payment_id = data["razorpay_payment_id"]
        if matched:
            order.payment_status = PAYMENT_PAID
            order.status = "confirmed"
            order.gateway_signature = data["razorpay_signature"]
        else:
            order.payment_status = PAYMENT_FAILED
        return order, matched

    order, matched = atomic(_transition)

    if not matched:
        current_app.logger.warning(
            "Payment signature mismatch for order %s (payment %s)",
            order.id, data["razorpay_payment_id"],
        )
        raise PaymentVerificationFailed("Payment verification failed")

    current_app.logger.info("Payment verified for order %s", order.id)
    return {"message": "Payment verified successfully", "order_id": order.id}


def reset_payment_attempt(principal, payload: dict) -> Order:
    """Failed -> pending with the gateway order id cleared. Owner or admin."""
    data = validate_payload(payload, ORDER_REF_SCHEMA)

    def _op():
        query = db.session.query(Order).filter_by(id=data["order_id"])
        if not principal.is_admin:
            query = query.filter_by(user_id=principal.id)
        order = lock_for_update(query).first()
        if order is None:
            raise NotFound("Order not found")
        if order.payment_status != PAYMENT_FAILED:
            raise InvalidInput("Only failed payments can be retried")
        order.payment_status = PAYMENT_PENDING
        order.gateway_order_id = None
        order.gateway_payment_id = None
        order.gateway_signature = None
        return order

    return atomic(_op)


def list_online_payments(args, pagination) -> tuple[list[Order], dict]:
    query = db.session.query(Order).filter(Order.payment_method == "online")
    payment_status = args.get("payment_status")
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)
    return paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), pagination)
