# Overview: Flask API route for the public contact form.

from flask import Blueprint

from ..responses import api_response
from ..services import contact_service
from .helpers import json_body


contact_bp = Blueprint("contact", __name__, url_prefix="/api/contact")


@contact_bp.post("")
def submit_contact_route():
    return api_response({"message": contact_service.submit(json_body())})
