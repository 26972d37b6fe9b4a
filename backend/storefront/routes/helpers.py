# Overview: Small request helpers shared by the API blueprints.

from flask import request

from ..errors import InvalidInput


def json_body() -> dict:
    """
    The request's JSON object. An empty body is an empty dict; anything that
    is not a JSON object is rejected.
    """
    if not request.data:
        return {}
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")
    return payload


def client_info() -> tuple[str | None, str | None]:
    return request.headers.get("User-Agent"), request.remote_addr


def page_response(rows, meta: dict, serialize=None) -> dict:
    serialize = serialize or (lambda row: row.to_dict())
    return {"items": [serialize(row) for row in rows], "pagination": meta}
