# Overview: Flask API routes for public newsletter subscription.

from flask import Blueprint

from ..responses import api_created, api_response
from ..services import newsletter_service
from .helpers import json_body


newsletter_bp = Blueprint("newsletter", __name__, url_prefix="/api/newsletter")


@newsletter_bp.post("/subscribe")
def subscribe_route():
    subscriber, created = newsletter_service.subscribe(json_body())
    body = {"subscriber": subscriber.to_dict(), "message": "Successfully subscribed to newsletter"}
    return api_created(body) if created else api_response(body)


@newsletter_bp.post("/unsubscribe")
def unsubscribe_route():
    return api_response({"message": newsletter_service.unsubscribe(json_body())})
