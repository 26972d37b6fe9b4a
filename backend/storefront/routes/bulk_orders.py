# Overview: Flask API routes for bulk order enquiries.

from flask import Blueprint, request

from ..decorators import require_admin
from ..responses import api_created, api_response
from ..services import bulk_order_service
from ..validation import parse_pagination
from .helpers import json_body, page_response


bulk_orders_bp = Blueprint("bulk_orders", __name__, url_prefix="/api/bulk-orders")


@bulk_orders_bp.post("")
def submit_bulk_order_route():
    enquiry = bulk_order_service.submit(json_body())
    return api_created({"bulk_order": enquiry.to_dict(), "message": "Bulk order request submitted successfully"})


@bulk_orders_bp.get("")
@require_admin
def list_bulk_orders_route():
    rows, meta = bulk_order_service.list_bulk_orders(request.args, parse_pagination(request.args))
    return api_response(page_response(rows, meta))


@bulk_orders_bp.patch("/<int:bulk_order_id>")
@require_admin
def update_bulk_order_route(bulk_order_id: int):
    return api_response(bulk_order_service.update_status(bulk_order_id, json_body()).to_dict())
