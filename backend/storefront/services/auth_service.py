# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Passwords are hashed with bcrypt (cost factor 12). Accounts are never
deleted; is_active=False blocks sign-in and invalidates live sessions.

Password reset and OTP flows answer uniformly whether or not the account
exists, so responses cannot be used to enumerate accounts.
"""

from __future__ import annotations

import hashlib
import secrets
from datetime import timedelta

import bcrypt
from flask import current_app

from ..errors import Conflict, InvalidInput, Unauthenticated
from ..extensions import db
from ..gateways import render_template
from ..models import PasswordResetToken, User
from ..validation import Field, Schema, phone_digits, validate_payload
from . import session_service, settings_service
from .transactions import atomic
from storefront.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8
RESET_REQUESTED_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent"
)


class PasswordValidationError(InvalidInput):
    """Raised when password doesn't meet the length requirement."""


def _normalized_phone(value: str | None) -> str | None:
    """Account phones are stored as bare digits so OTP lookups match."""
    return phone_digits(value) if value else None


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
        )


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    """
    Verify password against bcrypt hash.

    Accounts created through phone OTP have no password hash and never match.
    """
    if not password_hash or not isinstance(password, str):
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed hash in the database
        return False


SIGNUP_SCHEMA = Schema(
    fields=(
        Field("email", "email", required=True),
        Field("password", required=True),
        Field("name", "name", required=True, max_length=120),
        Field("phone", "phone"),
    ),
    required_message="Email, password, and name are required",
)


def signup(payload: dict) -> User:
    """
    Register a customer.

    Raises Conflict if the email is already registered.
    """
    data = validate_payload(payload, SIGNUP_SCHEMA)
    password_hash = hash_password(data["password"])

    def _op():
        if db.session.query(User).filter_by(email=data["email"]).first():
            raise Conflict("User with this email already exists")
        user = User(
            email=data["email"],
            name=data["name"],
            phone=_normalized_phone(data.get("phone")),
            password_hash=password_hash,
        )
        db.session.add(user)
        return user

    return atomic(_op)


SIGNIN_SCHEMA = Schema(
    fields=(
        Field("email", required=True),
        Field("password", required=True),
    ),
    required_message="Email and password are required",
)


def authenticate(email: str, password: str) -> User | None:
    """
    Returns User if credentials are valid and the account is active, None otherwise.

    Uses timing-safe comparison via bcrypt.
    """
    user = db.session.query(User).filter(
        User.email == email.strip().lower(),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        return user

    return None


def signin(payload: dict, user_agent: str | None = None, ip_address: str | None = None) -> dict:
    data = validate_payload(payload, SIGNIN_SCHEMA)
    user = authenticate(data["email"], data["password"])
    if user is None:
        current_app.logger.info("Failed sign-in for %s from %s", data["email"], ip_address)
        raise Unauthenticated("Invalid email or password")

    _session, token = session_service.create_session(user, user_agent, ip_address)
    return {"token": token, "user": user.to_dict()}


CHANGE_PASSWORD_SCHEMA = Schema(
    fields=(
        Field("current_password", required=True),
        Field("new_password", required=True),
    ),
    required_message="Current password and new password are required",
)


def change_password(user_id: int, session_id: int, payload: dict) -> None:
    """
    Replace the password and revoke every other session of the user.

    The session making the request stays valid.
    """
    data = validate_payload(payload, CHANGE_PASSWORD_SCHEMA)
    validate_password_strength(data["new_password"])

    user = db.session.get(User, user_id)
    if not verify_password(data["current_password"], user.password_hash):
        raise InvalidInput("Current password is incorrect")

    new_hash = hash_password(data["new_password"])

    def _op():
        user.password_hash = new_hash
        session_service.revoke_all_user_sessions(
            user.id,
            reason="Password changed",
            except_session_id=session_id,
            commit=False,
        )

    atomic(_op)


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------

RESET_EMAIL_HTML = (
    "<p>Hello {{NAME}},</p>"
    "<p>We received a request to reset your password. "
    "<a href=\"{{RESET_URL}}\">Reset your password</a>. "
    "The link expires in {{TTL_MINUTES}} minutes.</p>"
    "<p>If you did not request this, you can ignore this email.</p>"
)


def _hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def request_password_reset(payload: dict) -> str:
    """
    Issue a reset token and email it when the account exists.

    Always returns the same message.
    """
    data = validate_payload(
        payload,
        Schema(fields=(Field("email", "email", required=True),), required_message="Email is required"),
    )

    user = db.session.query(User).filter_by(email=data["email"], is_active=True).first()
    if user is None:
        return RESET_REQUESTED_MESSAGE

    token = secrets.token_urlsafe(32)
    ttl = current_app.config.get("PASSWORD_RESET_TTL_MINUTES", 60)

    def _op():
        db.session.add(PasswordResetToken(
            user_id=user.id,
            token_hash=_hash_reset_token(token),
            expires_at=utcnow() + timedelta(minutes=ttl),
        ))

    atomic(_op)

    reset_url = f"{current_app.config['SITE_URL'].rstrip('/')}/reset-password?token={token}"
    html = render_template(RESET_EMAIL_HTML, {
        "NAME": user.name,
        "RESET_URL": reset_url,
        "TTL_MINUTES": ttl,
    })
    if not settings_service.send_mail(user.email, "Reset your password", html):
        current_app.logger.warning("Password reset email to user %s was not sent", user.id)

    return RESET_REQUESTED_MESSAGE


CONFIRM_RESET_SCHEMA = Schema(
    fields=(
        Field("token", required=True),
        Field("password", required=True),
    ),
    required_message="Token and password are required",
)


def confirm_password_reset(payload: dict) -> None:
    """Set a new password from a reset token; the token is single-use."""
    data = validate_payload(payload, CONFIRM_RESET_SCHEMA)
    new_hash = hash_password(data["password"])

    def _op():
        reset = db.session.query(PasswordResetToken).filter_by(
            token_hash=_hash_reset_token(data["token"]),
            used_at=None,
        ).with_for_update().first()
        if reset is None or reset.expires_at < utcnow():
            raise InvalidInput("Invalid or expired reset token")

        reset.used_at = utcnow()
        reset.user.password_hash = new_hash
        session_service.revoke_all_user_sessions(
            reset.user_id, reason="Password reset", commit=False
        )

    atomic(_op)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

PROFILE_SCHEMA = Schema(
    fields=(
        Field("name", "name", min_length=2, max_length=120, label="Name"),
        Field("email", "email"),
        Field("phone", "phone"),
        Field("image", max_length=500),
    ),
)


def update_profile(user_id: int, payload: dict) -> User:
    patch = validate_payload(payload, PROFILE_SCHEMA, partial=True)
    if "name" in patch and not patch["name"]:
        raise InvalidInput("Name must be at least 2 characters")

    def _op():
        user = db.session.get(User, user_id)
        new_email = patch.get("email")
        if new_email and new_email != user.email:
            taken = db.session.query(User).filter(
                User.email == new_email, User.id != user.id
            ).first()
            if taken:
                raise Conflict("Email already in use")
            user.email = new_email
            user.email_verified_at = None
        elif "email" in patch and not new_email:
            raise InvalidInput("Email is required")

        if "phone" in patch and _normalized_phone(patch["phone"]) != user.phone:
            user.phone = _normalized_phone(patch["phone"])
            user.phone_verified_at = None

        for key in ("name", "image"):
            if key in patch:
                setattr(user, key, patch[key])
        return user

    return atomic(_op)

