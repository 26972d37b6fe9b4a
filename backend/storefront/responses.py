# Overview: Uniform JSON envelopes for every API response.

from __future__ import annotations

from typing import Any

from flask import jsonify


def api_response(data: Any = None, status: int = 200):
    """Wrap a success payload as {"data": ..., "success": true}."""
    return jsonify({"data": data, "success": True}), status


def api_created(data: Any = None):
    return api_response(data, 201)


def api_error(message: str, status: int = 400):
    """Wrap a failure as {"error": ..., "success": false}."""
    return jsonify({"error": message, "success": False}), status
