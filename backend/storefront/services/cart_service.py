# Overview: Service-layer operations for the shopping cart.

from __future__ import annotations

from decimal import Decimal

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import Cart, CartItem, Product
from ..validation import Field, Schema, validate_payload
from .transactions import atomic


ADD_ITEM_SCHEMA = Schema(
    fields=(
        Field("product_id", "int", required=True, label="Product ID"),
        Field("quantity", "int", default=1, min_value=1, inclusive_min=True,
              message="Quantity must be at least 1"),
    ),
)

UPDATE_ITEM_SCHEMA = Schema(
    fields=(
        Field("quantity", "int", required=True, min_value=1, inclusive_min=True,
              message="Quantity must be at least 1", label="Quantity"),
    ),
)


def _get_or_create_cart(user_id: int) -> Cart:
    cart = db.session.query(Cart).filter_by(user_id=user_id).first()
    if cart is None:
        cart = Cart(user_id=user_id)
        db.session.add(cart)
        db.session.flush()
    return cart


def serialize_cart(cart: Cart | None) -> dict:
    items = cart.items if cart else []
    return {
        "id": cart.id if cart else None,
        "items": [item.to_dict() for item in items],
        "item_count": sum(item.quantity for item in items),
        "subtotal": float(sum((item.product.price * item.quantity for item in items), Decimal("0"))),
    }


def get_cart(user_id: int) -> dict:
    return serialize_cart(db.session.query(Cart).filter_by(user_id=user_id).first())


def add_item(user_id: int, payload: dict) -> dict:
    data = validate_payload(payload, ADD_ITEM_SCHEMA)

    def _op():
        product = db.session.get(Product, data["product_id"])
        if product is None:
            raise NotFound("Product not found")
        if not product.in_stock:
            raise InvalidInput("Product is out of stock")

        cart = _get_or_create_cart(user_id)
        item = db.session.query(CartItem).filter_by(
            cart_id=cart.id, product_id=product.id
        ).first()
        if item:
            item.quantity += data["quantity"]
        else:
            cart.items.append(CartItem(product_id=product.id, quantity=data["quantity"]))
        return cart

    return serialize_cart(atomic(_op))


def _owned_item(user_id: int, item_id: int) -> CartItem:
    item = (
        db.session.query(CartItem)
        .join(Cart, CartItem.cart_id == Cart.id)
        .filter(CartItem.id == item_id, Cart.user_id == user_id)
        .first()
    )
    if item is None:
        raise NotFound("Cart item not found")
    return item


def update_item(user_id: int, item_id: int, payload: dict) -> dict:
    data = validate_payload(payload, UPDATE_ITEM_SCHEMA)

    def _op():
        item = _owned_item(user_id, item_id)
        item.quantity = data["quantity"]
        return item.cart

    return serialize_cart(atomic(_op))


def remove_item(user_id: int, item_id: int) -> dict:
    def _op():
        item = _owned_item(user_id, item_id)
        cart = item.cart
        cart.items.remove(item)
        return cart

    return serialize_cart(atomic(_op))


def clear_cart(user_id: int, commit: bool = True) -> None:
    cart = db.session.query(Cart).filter_by(user_id=user_id).first()
    if cart is not None:
        cart.items.clear()
    if commit:
        db.session.commit()
