# Overview: Flask API routes for online payment (gateway order, verification, retry).

from flask import Blueprint, current_app, g

from ..decorators import require_auth
from ..responses import api_response
from ..services import payment_service, settings_service
from .helpers import json_body


payment_bp = Blueprint("payment", __name__, url_prefix="/api/payment")


@payment_bp.get("/config")
def payment_config_route():
    return api_response(settings_service.public_payment_config(current_app.config))


@payment_bp.post("/create-order")
@require_auth
def create_payment_order_route():
    return api_response(payment_service.create_gateway_order(g.principal.id, json_body()))


@payment_bp.post("/verify")
@require_auth
def verify_payment_route():
    return api_response(payment_service.verify_payment(g.principal.id, json_body()))


@payment_bp.post("/retry")
@require_auth
def retry_payment_route():
    order = payment_service.reset_payment_attempt(g.principal, json_body())
    return api_response({"order": order.to_summary(), "message": "Payment reset. You can retry now."})
