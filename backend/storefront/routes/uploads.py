# Overview: Flask API routes for admin image uploads.

from flask import Blueprint, current_app, request

from ..decorators import require_admin
from ..gateways import get_gateway
from ..responses import api_created, api_response


uploads_bp = Blueprint("uploads", __name__, url_prefix="/api/upload")


@uploads_bp.post("/image")
@require_admin
def upload_image_route():
    stored = get_gateway("storage").store(
        request.files.get("file"),
        current_app.config["ALLOWED_IMAGE_TYPES"],
        current_app.config["MAX_UPLOAD_BYTES"],
    )
    current_app.logger.info("Image uploaded: %s", stored.path)
    return api_created({"url": stored.url, "path": stored.path})


@uploads_bp.delete("/image")
@require_admin
def delete_image_route():
    get_gateway("storage").delete(request.args.get("path", ""))
    return api_response({"message": "File deleted successfully"})
