# Overview: Service-layer operations for orders; checkout, listing, admin status updates and cancellation.

"""
Order lifecycle.

Checkout is one transaction: price the items, redeem the coupon (row lock,
re-checked usage limit), write the order with its items, clear the cart.
Any failure leaves no order, no coupon use and the cart untouched.
"""

from __future__ import annotations

import secrets
import string
import time
from decimal import Decimal

from flask import current_app

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import Address, Order, OrderItem, Product
from ..models.orders import CANCELLABLE_STATUSES, ORDER_STATUSES, PAYMENT_METHODS, PAYMENT_STATUSES
from ..validation import Field, Schema, paginate, validate_payload, validate_value
from . import cart_service, coupon_service
from .transactions import atomic, lock_for_update, run_in_transaction


_ORDER_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_order_number() -> str:
    """ORD-<epoch millis>-<9 random upper-case alphanumerics>."""
    suffix = "".join(secrets.choice(_ORDER_SUFFIX_ALPHABET) for _ in range(9))
    return f"ORD-{int(time.time() * 1000)}-{suffix}"


def delivery_charge_for(subtotal: Decimal) -> Decimal:
    threshold = Decimal(str(current_app.config["FREE_DELIVERY_THRESHOLD"]))
    if subtotal >= threshold:
        return Decimal("0.00")
    return Decimal(str(current_app.config["DELIVERY_CHARGE"]))


CHECKOUT_SCHEMA = Schema(
    fields=(
        Field("address_id", "int", required=True, label="Shipping address"),
        Field("payment_method", required=True, choices=PAYMENT_METHODS,
              message="Valid payment method is required"),
        Field("coupon_code", upper=True, max_length=64),
        Field("notes", "text", max_length=2000),
    ),
)


_ITEM_PRODUCT = Field("product_id", "int", label="Product ID")
_ITEM_QUANTITY = Field("quantity", "int", label="Quantity", min_value=1, inclusive_min=True,
                       message="Quantity must be at least 1")


def _parse_items(raw) -> list[tuple[int, int]]:
    if not isinstance(raw, list) or not raw:
        raise InvalidInput("Order must contain at least one item")

    merged: dict[int, int] = {}
    for entry in raw:
        if not isinstance(entry, dict):
            raise InvalidInput("Each item needs a product_id and quantity")
        product_id = validate_value(_ITEM_PRODUCT, entry.get("product_id"))
        quantity = validate_value(_ITEM_QUANTITY, entry.get("quantity", 1))
        merged[product_id] = merged.get(product_id, 0) + quantity
    return list(merged.items())


def create_order(user_id: int, payload: dict) -> Order:
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")
    items = _parse_items(payload.get("items"))
    if payload.get("address_id") in (None, ""):
        raise InvalidInput("Shipping address is required")
    data = validate_payload(payload, CHECKOUT_SCHEMA)

    def price_items(ctx):
        address = db.session.query(Address).filter_by(
            id=data["address_id"], user_id=user_id
        ).first()
        if address is None:
            raise NotFound("Address not found")

        lines = []
        subtotal = Decimal("0.00")
        for product_id, quantity in items:
            product = db.session.get(Product, product_id)
            if product is None:
                raise NotFound(f"Product {product_id} not found")
            if not product.in_stock:
                raise InvalidInput(f"Product {product.name} is out of stock")
            price = Decimal(product.price)
            subtotal += price * quantity
            lines.append((product.id, quantity, price))

        ctx["address"] = address
        ctx["lines"] = lines
        ctx["subtotal"] = subtotal

    def redeem_coupon(ctx):
        ctx["discount"] = Decimal("0.00")
        ctx["coupon_code"] = None
        if data.get("coupon_code"):
            result = coupon_service.redeem_in_transaction(data["coupon_code"], ctx["subtotal"])
            ctx["discount"] = result.discount_amount
            ctx["coupon_code"] = result.coupon.code

    def write_order(ctx):
        subtotal = ctx["subtotal"]
        delivery = delivery_charge_for(subtotal)
        order = Order(
            user_id=user_id,
            order_number=generate_order_number(),
            subtotal=subtotal,
            discount=ctx["discount"],
            delivery_charge=delivery,
            # Fixed coupons apply in full; only the payable total is floored
            total=max(subtotal - ctx["discount"] + delivery, Decimal("0.00")),
            status="pending",
            payment_method=data["payment_method"],
            payment_status="pending",
            address_id=ctx["address"].id,
            coupon_code=ctx["coupon_code"],
            notes=data.get("notes"),
        )
        for product_id, quantity, price in ctx["lines"]:
            order.items.append(OrderItem(product_id=product_id, quantity=quantity, price=price))
        db.session.add(order)
        ctx["order"] = order

    def clear_cart(ctx):
        cart_service.clear_cart(user_id, commit=False)
        return ctx["order"]

    order = run_in_transaction(price_items, redeem_coupon, write_order, clear_cart)
    current_app.logger.info(
        "Order %s created for user %s (total %s)", order.order_number, user_id, order.total
    )
    return order


def list_orders(principal, args, pagination) -> tuple[list[Order], dict]:
    query = db.session.query(Order)
    if not principal.is_admin:
        query = query.filter(Order.user_id == principal.id)

    status = args.get("status")
    if status:
        query = query.filter(Order.status == status)

    payment_status = args.get("payment_status")
    if payment_status:
        query = query.filter(Order.payment_status == payment_status)

    return paginate(query.order_by(Order.created_at.desc(), Order.id.desc()), pagination)


def get_order(principal, order_id: int) -> Order:
    """Owner or admin; anyone else gets NotFound so other ids stay hidden."""
    order = db.session.get(Order, order_id)
    if order is None or (not principal.is_admin and order.user_id != principal.id):
        raise NotFound("Order not found")
    return order


ADMIN_UPDATE_SCHEMA = Schema(
    fields=(
        Field("status", choices=ORDER_STATUSES, message="Invalid status"),
        Field("payment_status", choices=PAYMENT_STATUSES, message="Invalid payment status"),
        Field("notes", "text", max_length=2000),
    ),
)


def admin_update_order(order_id: int, payload: dict) -> Order:
    """
    Set status / payment_status. Setting the value an order already has is a
    no-op success, so repeated calls converge on the same state.
    """
    patch = validate_payload(payload, ADMIN_UPDATE_SCHEMA, partial=True)
    if not patch:
        raise InvalidInput("Nothing to update")

    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None:
            raise NotFound("Order not found")
        for key, value in patch.items():
            if value is None and key != "notes":
                continue
            if getattr(order, key) != value:
                setattr(order, key, value)
        return order

    return atomic(_op)


def cancel_order(principal, order_id: int) -> Order:
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if order is None or (not principal.is_admin and order.user_id != principal.id):
            raise NotFound("Order not found")
        if order.status == "cancelled":
            return order
        if order.status not in CANCELLABLE_STATUSES:
            raise InvalidInput("Order cannot be cancelled")
        order.status = "cancelled"
        return order

    return atomic(_op)
