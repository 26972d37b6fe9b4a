# Overview: Flask API routes for liveness checks.

from flask import Blueprint

from ..extensions import db
from ..responses import api_response


system_bp = Blueprint("system", __name__)


@system_bp.get("/health")
def health():
    return api_response({"status": "ok"})


@system_bp.get("/health/db")
def health_db():
    db.session.execute(db.text("SELECT 1"))
    return api_response({"status": "ok", "database": "reachable"})
