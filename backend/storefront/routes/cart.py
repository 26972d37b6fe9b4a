# Overview: Flask API routes for the caller's shopping cart.

from flask import Blueprint, g

from ..decorators import require_auth
from ..responses import api_response
from ..services import cart_service
from .helpers import json_body


cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


@cart_bp.get("")
@require_auth
def get_cart_route():
    return api_response(cart_service.get_cart(g.principal.id))


@cart_bp.post("")
@require_auth
def add_to_cart_route():
    return api_response(cart_service.add_item(g.principal.id, json_body()))


@cart_bp.put("/<int:item_id>")
@require_auth
def update_cart_item_route(item_id: int):
    return api_response(cart_service.update_item(g.principal.id, item_id, json_body()))


@cart_bp.delete("/<int:item_id>")
@require_auth
def remove_cart_item_route(item_id: int):
    return api_response(cart_service.remove_item(g.principal.id, item_id))


@cart_bp.delete("")
@require_auth
def clear_cart_route():
    cart_service.clear_cart(g.principal.id)
    return api_response({"message": "Cart cleared"})
