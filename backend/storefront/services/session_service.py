# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Tokens are cryptographically random, stored only as a SHA-256 hash, expire
after SESSION_MAX_AGE_DAYS and can be revoked (sign-out, password change,
account deactivation).

validate_session is read-only: it resolves a Principal from a token and never
writes, so resolving identity on every request has no side effects.
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import SessionToken, User
from storefront.time_utils import utcnow


DEFAULT_SESSION_MAX_AGE = timedelta(days=30)
CLEANUP_RETENTION = timedelta(days=30)


@dataclass(frozen=True)
class Principal:
    """
    The authenticated actor of a request.

    Immutable for the lifetime of the request; role and verification flags
    come from the user row, not from the token.
    """
    id: int
    role: str
    email: str
    name: str
    email_verified: bool
    phone_verified: bool
    session_id: int

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _max_age() -> timedelta:
    days = current_app.config.get("SESSION_MAX_AGE_DAYS")
    return timedelta(days=days) if days else DEFAULT_SESSION_MAX_AGE


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy) sent to the client, never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    Hash token for database storage using SHA-256.

    Tokens are already high-entropy, so a fast hash is sufficient.
    """
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(
    user: User,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Create a new session for an active user.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    if not user.is_active:
        raise ValueError("User account is disabled")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        user_id=user.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        expires_at=now + _max_age(),
        user_agent=(user_agent or "")[:255] or None,
        ip_address=ip_address,
        is_revoked=False
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def validate_session(token: str) -> Principal | None:
    """
    Resolve a Principal from a plaintext token.

    Returns None if the token is unknown, revoked or expired, or if the user
    account has been disabled.
    """
    if not token:
        return None

    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return None

    if session.expires_at < utcnow():
        return None

    user = session.user
    if not user or not user.is_active:
        return None

    return Principal(
        id=user.id,
        role=user.role,
        email=user.email,
        name=user.name,
        email_verified=user.email_verified_at is not None,
        phone_verified=user.phone_verified_at is not None,
        session_id=session.id,
    )


def revoke_session(token: str, reason: str = "User sign-out") -> bool:
    """Returns True if a live session was revoked, False if not found."""
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()

    if not session:
        return False

    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason

    db.session.commit()
    return True


def revoke_all_user_sessions(
    user_id: int,
    reason: str = "Revoke all sessions",
    except_session_id: int | None = None,
    commit: bool = True,
) -> int:
    """
    Revoke every live session of a user, optionally keeping the current one.

    Returns count of sessions revoked.
    """
    now = utcnow()

    query = db.session.query(SessionToken).filter_by(user_id=user_id, is_revoked=False)
    if except_session_id is not None:
        query = query.filter(SessionToken.id != except_session_id)

    count = 0
    for session in query.all():
        session.is_revoked = True
        session.revoked_at = now
        session.revoked_reason = reason
        count += 1

    if commit:
        db.session.commit()
    return count


def cleanup_expired_sessions() -> int:
    """
    Delete expired and revoked sessions older than 30 days.

    Run periodically (flask maintenance cleanup-sessions).
    """
    now = utcnow()
    cutoff = now - CLEANUP_RETENTION

    deleted = db.session.query(SessionToken).filter(
        db.or_(
            SessionToken.expires_at < now,
            SessionToken.is_revoked.is_(True)
        ),
        SessionToken.created_at < cutoff
    ).delete(synchronize_session=False)

    db.session.commit()
    return deleted
