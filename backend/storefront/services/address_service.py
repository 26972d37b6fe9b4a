# Overview: Service-layer operations for shipping addresses (one default per user).

from __future__ import annotations

from ..errors import InvalidInput, NotFound
from ..extensions import db
from ..models import Address
from ..validation import Field, Schema, validate_payload
from .default_flag_service import mark_default, set_as_default
from .transactions import atomic


ADDRESS_FIELDS = (
    Field("name", "name", required=True, max_length=120),
    Field("phone", "phone", required=True),
    Field("street", required=True, max_length=255),
    Field("city", required=True, max_length=120),
    Field("state", required=True, max_length=120),
    Field("pincode", "pincode", required=True),
    Field("is_default", "bool", default=False),
)

ADDRESS_SCHEMA = Schema(fields=ADDRESS_FIELDS, required_message="All fields are required")

ADDRESS_COLUMNS = ("name", "phone", "street", "city", "state", "pincode")


def list_addresses(user_id: int) -> list[Address]:
    return (
        db.session.query(Address)
        .filter_by(user_id=user_id)
        .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
        .all()
    )


def _owned(user_id: int, address_id: int) -> Address:
    address = db.session.query(Address).filter_by(id=address_id, user_id=user_id).first()
    if address is None:
        raise NotFound("Address not found")
    return address


def get_address(user_id: int, address_id: int) -> Address:
    return _owned(user_id, address_id)


def create_address(user_id: int, payload: dict) -> Address:
    data = validate_payload(payload, ADDRESS_SCHEMA)

    def _op():
        address = Address(user_id=user_id, **{k: data[k] for k in ADDRESS_COLUMNS})
        db.session.add(address)
        db.session.flush()
        if data["is_default"]:
            mark_default("address", address)
        return address

    return atomic(_op)


def update_address(user_id: int, address_id: int, payload: dict) -> Address:
    patch = validate_payload(payload, ADDRESS_SCHEMA, partial=True)

    def _op():
        address = _owned(user_id, address_id)
        for key in ADDRESS_COLUMNS:
            if key in patch:
                if patch[key] is None:
                    raise InvalidInput("All fields are required")
                setattr(address, key, patch[key])
        if patch.get("is_default"):
            mark_default("address", address)
        elif "is_default" in patch:
            address.is_default = False
        return address

    return atomic(_op)


def delete_address(user_id: int, address_id: int) -> None:
    def _op():
        db.session.delete(_owned(user_id, address_id))

    atomic(_op)


def make_default(user_id: int, address_id: int) -> Address:
    return set_as_default(user_id, address_id, "address")
