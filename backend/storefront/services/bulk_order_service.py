# Overview: Service-layer operations for wholesale (bulk) order enquiries.

from __future__ import annotations

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import BulkOrder
from ..models.bulk_orders import BULK_ORDER_MIN_QUANTITY, BULK_ORDER_STATUSES
from ..validation import Field, Schema, paginate, validate_payload
from .transactions import atomic


BULK_ORDER_SCHEMA = Schema(
    fields=(
        Field("name", "name", required=True, max_length=120),
        Field("email", "email", required=True),
        Field("phone", "phone", required=True),
        Field("company", max_length=255),
        Field("product_name", required=True, max_length=255),
        Field("quantity", "int", required=True, min_value=BULK_ORDER_MIN_QUANTITY, inclusive_min=True,
              message=f"Minimum quantity is {BULK_ORDER_MIN_QUANTITY} boxes"),
        Field("message", "text", required=True, max_length=5000),
    ),
    required_message="Missing required fields",
)


def submit(payload: dict) -> BulkOrder:
    data = validate_payload(payload, BULK_ORDER_SCHEMA)

    def _op():
        enquiry = BulkOrder(status="pending", **data)
        db.session.add(enquiry)
        return enquiry

    return atomic(_op)


def list_bulk_orders(args, pagination) -> tuple[list[BulkOrder], dict]:
    query = db.session.query(BulkOrder)
    status = args.get("status")
    if status:
        if status not in BULK_ORDER_STATUSES:
            raise InvalidInput("Invalid status")
        query = query.filter(BulkOrder.status == status)
    return paginate(query.order_by(BulkOrder.created_at.desc(), BulkOrder.id.desc()), pagination)


STATUS_SCHEMA = Schema(
    fields=(Field("status", required=True, choices=BULK_ORDER_STATUSES, message="Invalid status"),),
    required_message="Status is required",
)


def update_status(bulk_order_id: int, payload: dict) -> BulkOrder:
    data = validate_payload(payload, STATUS_SCHEMA)

    def _op():
        enquiry = db.session.get(BulkOrder, bulk_order_id)
        if enquiry is None:
            raise NotFound("Bulk order not found")
        enquiry.status = data["status"]
        return enquiry

    return atomic(_op)
