# Overview: Flask API routes for the caller's shipping addresses.

from flask import Blueprint, g

from ..decorators import require_auth
from ..responses import api_created, api_response
from ..services import address_service
from .helpers import json_body


addresses_bp = Blueprint("addresses", __name__, url_prefix="/api/addresses")


@addresses_bp.get("")
@require_auth
def list_addresses_route():
    return api_response([a.to_dict() for a in address_service.list_addresses(g.principal.id)])


@addresses_bp.post("")
@require_auth
def create_address_route():
    return api_created(address_service.create_address(g.principal.id, json_body()).to_dict())


@addresses_bp.get("/<int:address_id>")
@require_auth
def get_address_route(address_id: int):
    return api_response(address_service.get_address(g.principal.id, address_id).to_dict())


@addresses_bp.put("/<int:address_id>")
@require_auth
def update_address_route(address_id: int):
    address = address_service.update_address(g.principal.id, address_id, json_body())
    return api_response(address.to_dict())


@addresses_bp.delete("/<int:address_id>")
@require_auth
def delete_address_route(address_id: int):
    address_service.delete_address(g.principal.id, address_id)
    return api_response({"message": "Address deleted successfully"})


@addresses_bp.post("/<int:address_id>/default")
@require_auth
def set_default_address_route(address_id: int):
    return api_response(address_service.make_default(g.principal.id, address_id).to_dict())
