# Overview: Service-layer operations for phone OTP sign-in; encapsulates business logic and database work.

"""
Phone OTP sign-in.

One pending code per phone number (re-sending replaces it). Codes are six
digits, valid for OTP_TTL and allow MAX_ATTEMPTS wrong guesses. Only the
SHA-256 hash of a code is stored.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from datetime import timedelta

from flask import current_app

from ..errors import Conflict, InvalidInput, UpstreamFailure
from ..extensions import db
from ..gateways import get_gateway
from ..models import OtpCode, User
from ..validation import Field, Schema, validate_payload
from . import session_service, settings_service
from .transactions import atomic, lock_for_update
from storefront.time_utils import utcnow


OTP_TTL = timedelta(minutes=10)
MAX_ATTEMPTS = 3


def generate_otp() -> str:
    return f"{secrets.randbelow(900000) + 100000}"


def _hash_code(phone: str, code: str) -> str:
    return hashlib.sha256(f"{phone}:{code}".encode('utf-8')).hexdigest()


def mask_phone(phone: str) -> str:
    """'9876543210' -> '******3210'."""
    return phone[-4:].rjust(10, "*")


SEND_OTP_SCHEMA = Schema(
    fields=(Field("phone", "mobile", required=True),),
    required_message="Phone number is required",
)


def send_otp(payload: dict) -> dict:
    data = validate_payload(payload, SEND_OTP_SCHEMA)
    phone = data["phone"]

    settings = settings_service.active_sms_settings()
    if settings is None:
        raise UpstreamFailure(
            "SMS service is not configured. Please contact administrator.", status_code=503
        )

    code = generate_otp()

    def _op():
        row = lock_for_update(db.session.query(OtpCode).filter_by(phone=phone)).first()
        if row is None:
            row = OtpCode(phone=phone)
            db.session.add(row)
        row.code_hash = _hash_code(phone, code)
        row.attempts = 0
        row.max_attempts = MAX_ATTEMPTS
        row.verified = False
        row.expires_at = utcnow() + OTP_TTL
        row.created_at = utcnow()

    atomic(_op)

    result = get_gateway("sms").send_otp(phone, code, settings)
    if not result.success:
        current_app.logger.warning("OTP send to %s failed: %s", mask_phone(phone), result.message)
        raise UpstreamFailure(result.message or "Failed to send OTP")

    return {
        "message": "OTP sent successfully",
        "phone": mask_phone(phone),
        "expires_in": int(OTP_TTL.total_seconds()),
    }


def _check_code(phone: str, code: str) -> None:
    """
    Verify and consume a code. Wrong guesses are committed before raising so
    the attempt counter survives the failed request.
    """
    row = lock_for_update(db.session.query(OtpCode).filter_by(phone=phone)).first()
    if row is None or row.verified:
        raise InvalidInput("OTP not found. Please request a new OTP.")

    if row.expires_at < utcnow():
        db.session.delete(row)
        db.session.commit()
        raise InvalidInput("OTP has expired. Please request a new OTP.")

    if row.attempts >= row.max_attempts:
        db.session.delete(row)
        db.session.commit()
        raise InvalidInput("Maximum attempts exceeded. Please request a new OTP.")

    if not hmac.compare_digest(row.code_hash, _hash_code(phone, code)):
        row.attempts += 1
        db.session.commit()
        raise InvalidInput("Invalid OTP. Please try again.")

    db.session.delete(row)


VERIFY_OTP_SCHEMA = Schema(
    fields=(
        Field("phone", "mobile", required=True),
        Field("otp", required=True),
        Field("name", "name", max_length=120),
        Field("email", "email"),
    ),
    required_message="Phone number and OTP are required",
)


def verify_otp(payload: dict, user_agent: str | None = None, ip_address: str | None = None) -> tuple[dict, bool]:
    """
    Verify a code and sign the caller in.

    An existing account with that phone gets its phone marked verified;
    otherwise a customer account is created (email required).
    Returns (response_body, created).
    """
    data = validate_payload(payload, VERIFY_OTP_SCHEMA)
    phone = data["phone"]

    _check_code(phone, data["otp"])

    user = db.session.query(User).filter_by(phone=phone).first()
    created = user is None
    if user is not None:
        if not user.is_active:
            db.session.rollback()
            raise InvalidInput("Account is disabled")
        user.phone_verified_at = utcnow()
        db.session.commit()
        message = "Phone verified successfully"
    else:
        email = data.get("email")
        if not email:
            db.session.rollback()
            raise InvalidInput("Email is required for new registration")

        def _create():
            if db.session.query(User).filter_by(email=email).first():
                raise Conflict("Email already registered. Please login with email instead.")
            new_user = User(
                name=data.get("name") or email.split("@")[0],
                email=email,
                phone=phone,
                phone_verified_at=utcnow(),
            )
            db.session.add(new_user)
            return new_user

        user = atomic(_create)
        message = "Account created and phone verified successfully"

    _session, token = session_service.create_session(user, user_agent, ip_address)
    return {"token": token, "user": user.to_dict(), "message": message}, created


def cleanup_expired_otps() -> int:
    deleted = db.session.query(OtpCode).filter(
        OtpCode.expires_at < utcnow()
    ).delete(synchronize_session=False)
    db.session.commit()
    return deleted
