# Overview: Service-layer operations for the admin customer directory.

from __future__ import annotations

from ..errors import NotFound
from ..extensions import db
from ..models import Order, User
from ..models.users import ROLE_CUSTOMER
from ..validation import Field, Schema, paginate, validate_payload
from . import session_service
from .transactions import atomic


def list_customers(args, pagination) -> tuple[list[dict], dict]:
    query = db.session.query(User).filter(User.role == ROLE_CUSTOMER)

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(
            db.or_(User.name.ilike(pattern), User.email.ilike(pattern), User.phone.ilike(pattern))
        )

    users, meta = paginate(query.order_by(User.created_at.desc(), User.id.desc()), pagination)

    counts = {}
    if users:
        rows = (
            db.session.query(Order.user_id, db.func.count(Order.id))
            .filter(Order.user_id.in_([u.id for u in users]))
            .group_by(Order.user_id)
            .all()
        )
        counts = dict(rows)

    result = []
    for user in users:
        row = user.to_dict()
        row["order_count"] = counts.get(user.id, 0)
        result.append(row)
    return result, meta


CUSTOMER_UPDATE_SCHEMA = Schema(
    fields=(Field("is_active", "bool", required=True),),
    required_message="is_active is required",
)


def set_active(customer_id: int, payload: dict) -> User:
    """Enable or disable a customer. Disabling revokes every live session."""
    data = validate_payload(payload, CUSTOMER_UPDATE_SCHEMA)

    def _op():
        user = db.session.query(User).filter_by(id=customer_id, role=ROLE_CUSTOMER).first()
        if user is None:
            raise NotFound("Customer not found")
        user.is_active = data["is_active"]
        if not data["is_active"]:
            session_service.revoke_all_user_sessions(
                user.id, reason="Account disabled", commit=False
            )
        return user

    return atomic(_op)
