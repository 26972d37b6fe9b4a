# Overview: Flask API route for public coupon validation.

from flask import Blueprint, request

from ..responses import api_response
from ..services import coupon_service


coupons_bp = Blueprint("coupons", __name__, url_prefix="/api/coupons")


@coupons_bp.get("/validate")
def validate_coupon_route():
    """
    Evaluate a code against an order amount.

    An inapplicable coupon is a normal answer (valid=false), not an error.
    """
    result = coupon_service.validate_request(request.args.to_dict())
    return api_response(result.to_dict())
