# Overview: Request decorators for API routes (authentication and admin gating).

"""
AuthGate.

require_auth resolves the bearer token to a Principal and stores it on
flask.g before the view runs; require_admin additionally requires the admin
role. Both run before any input parsing, so a rejected request never reaches
validation. Neither writes to the session store.
"""

from functools import wraps
from flask import g, request

from .errors import Forbidden, Unauthenticated
from .services import session_service


def bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def resolve_principal():
    """
    Principal for the current request, or None.

    Used directly by routes that are public but behave differently for a
    signed-in caller.
    """
    token = bearer_token()
    if not token:
        return None
    return session_service.validate_session(token)


def _authenticate() -> None:
    principal = resolve_principal()
    if principal is None:
        raise Unauthenticated()
    g.principal = principal


def require_auth(f):
    """
    Require a valid session.

    Sets g.principal (a frozen session_service.Principal).
    Raises Unauthenticated (401) when the token is missing, unknown, revoked,
    expired or belongs to a disabled account.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _authenticate()
        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """As require_auth, then Forbidden (403) unless principal.role == 'admin'."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        _authenticate()
        if not g.principal.is_admin:
            raise Forbidden()
        return f(*args, **kwargs)

    return decorated_function
