# Overview: Flask API routes for the product catalog and reviews.

from flask import Blueprint, g, request

from ..decorators import require_admin, require_auth
from ..responses import api_created, api_response
from ..services import product_service
from ..validation import parse_pagination
from .helpers import json_body, page_response


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products_route():
    rows, meta = product_service.list_products(request.args, parse_pagination(request.args))
    return api_response(page_response(rows, meta))


@products_bp.post("")
@require_admin
def create_product_route():
    return api_created(product_service.create_product(json_body()).to_dict())


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    return api_response(product_service.get_product(product_id).to_dict())


@products_bp.put("/<int:product_id>")
@require_admin
def update_product_route(product_id: int):
    return api_response(product_service.update_product(product_id, json_body()).to_dict())


@products_bp.delete("/<int:product_id>")
@require_admin
def delete_product_route(product_id: int):
    product_service.delete_product(product_id)
    return api_response({"message": "Product deleted successfully"})


@products_bp.post("/<int:product_id>/images/<int:image_id>/primary")
@require_admin
def set_primary_image_route(product_id: int, image_id: int):
    return api_response(product_service.set_primary_image(product_id, image_id).to_dict())


@products_bp.get("/<int:product_id>/reviews")
def list_reviews_route(product_id: int):
    return api_response([r.to_dict() for r in product_service.list_reviews(product_id)])


@products_bp.post("/<int:product_id>/reviews")
@require_auth
def create_review_route(product_id: int):
    review = product_service.create_review(product_id, g.principal.id, json_body())
    return api_created(review.to_dict())
