# Overview: Flask API routes for checkout and order management.

from flask import Blueprint, g, request

from ..decorators import require_admin, require_auth
from ..responses import api_created, api_response
from ..services import order_service
from ..validation import parse_pagination
from .helpers import json_body, page_response


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    order = order_service.create_order(g.principal.id, json_body())
    return api_created({"order": order.to_dict(), "message": "Order created successfully"})


@orders_bp.get("")
@require_auth
def list_orders_route():
    """Own orders; admins see every order."""
    rows, meta = order_service.list_orders(
        g.principal, request.args, parse_pagination(request.args)
    )
    return api_response(page_response(rows, meta))


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    return api_response(order_service.get_order(g.principal, order_id).to_dict())


@orders_bp.patch("/<int:order_id>")
@require_admin
def update_order_route(order_id: int):
    return api_response(order_service.admin_update_order(order_id, json_body()).to_dict())


@orders_bp.delete("/<int:order_id>")
@require_auth
def cancel_order_route(order_id: int):
    order = order_service.cancel_order(g.principal, order_id)
    return api_response({"order": order.to_dict(), "message": "Order cancelled successfully"})
