# Overview: Flask API routes for accounts, sessions, OTP sign-in and the caller's profile.

from flask import Blueprint, g

from ..decorators import bearer_token, require_auth
from ..extensions import db
from ..models import User
from ..responses import api_created, api_response
from ..services import auth_service, otp_service, session_service
from .helpers import client_info, json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


@auth_bp.post("/signup")
def signup_route():
    user = auth_service.signup(json_body())
    return api_created({"user": user.to_dict(), "message": "Account created successfully"})


@auth_bp.post("/signin")
def signin_route():
    """
    Authenticate and create a session token.

    The token goes in the Authorization header (Bearer) on later requests.
    """
    user_agent, ip_address = client_info()
    return api_response(auth_service.signin(json_body(), user_agent, ip_address))


@auth_bp.post("/signout")
@require_auth
def signout_route():
    session_service.revoke_session(bearer_token(), reason="User sign-out")
    return api_response({"message": "Signed out successfully"})


@auth_bp.get("/session")
@require_auth
def session_route():
    user = db.session.get(User, g.principal.id)
    return api_response({"user": user.to_dict()})


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    auth_service.change_password(g.principal.id, g.principal.session_id, json_body())
    return api_response({"message": "Password changed successfully"})


@auth_bp.post("/reset-password")
def reset_password_route():
    return api_response({"message": auth_service.request_password_reset(json_body())})


@auth_bp.post("/reset-password/confirm")
def confirm_reset_password_route():
    auth_service.confirm_password_reset(json_body())
    return api_response({"message": "Password has been reset successfully"})


@auth_bp.post("/send-otp")
def send_otp_route():
    return api_response(otp_service.send_otp(json_body()))


@auth_bp.post("/verify-otp")
def verify_otp_route():
    user_agent, ip_address = client_info()
    body, created = otp_service.verify_otp(json_body(), user_agent, ip_address)
    return api_created(body) if created else api_response(body)


@profile_bp.get("")
@require_auth
def get_profile_route():
    user = db.session.get(User, g.principal.id)
    return api_response(user.to_dict())


@profile_bp.put("")
@require_auth
def update_profile_route():
    user = auth_service.update_profile(g.principal.id, json_body())
    return api_response(user.to_dict())
