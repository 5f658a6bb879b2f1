# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

WHY: Secure session management with automatic timeout and revocation.
Tokens are cryptographically secure, hashed in database, and time-limited.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage (fast, one-way)
- 24-hour absolute timeout (SESSION_ABSOLUTE_TIMEOUT)
- 2-hour idle timeout (SESSION_IDLE_TIMEOUT)
- Revocable on logout
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import timedelta
from ..extensions import db
from ..models import SessionToken, Profile
from .concurrency import commit_or_raise, translate_store_errors
from chaintrack.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


class NotAuthenticatedError(Exception):
    """Raised when an action needs an acting profile and none is bound."""
    pass


@dataclass
class SessionContext:
    """Session context returned by validate_session."""
    profile: Profile
    session: SessionToken


def generate_token() -> str:
    """
    Generate cryptographically secure random token.

    Returns 64-character hex string (32 bytes of entropy).
    This is the plaintext token sent to client (never stored).
    """
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """Hash token for database storage using SHA-256."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def require_actor(actor: Profile | None) -> Profile:
    """Return the acting profile or raise NotAuthenticatedError."""
    if actor is None or getattr(actor, "id", None) is None:
        raise NotAuthenticatedError("User not authenticated")
    if not actor.is_active:
        raise NotAuthenticatedError("User account is deactivated")
    return actor


@translate_store_errors
def create_session(profile_id: int) -> tuple[SessionToken, str]:
    """
    Create new session token for a profile.

    Returns (session_record, plaintext_token).
    Client receives plaintext_token, database stores only the hash.
    """
    profile = db.session.get(Profile, profile_id)
    if not profile:
        raise ValueError("Profile not found")

    plaintext_token = generate_token()
    now = utcnow()

    session = SessionToken(
        profile_id=profile.id,
        token_hash=hash_token(plaintext_token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        is_revoked=False,
    )

    db.session.add(session)
    commit_or_raise()

    return session, plaintext_token


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    commit_or_raise()


@translate_store_errors
def validate_session(token: str) -> SessionContext | None:
    """
    Validate session token and return SessionContext if valid.

    Returns None if the token is unknown, expired, idle too long, revoked,
    or belongs to a deactivated profile. Updates last_used_at on success.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return None

    now = utcnow()

    if session.expires_at < now:
        return None

    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    profile = session.profile
    if not profile or not profile.is_active:
        _revoke(session, "Profile deactivated")
        return None

    session.last_used_at = now
    commit_or_raise()

    return SessionContext(profile=profile, session=session)


@translate_store_errors
def revoke_session(token: str, reason: str = "User logout") -> bool:
    """
    Revoke session token.

    Returns True if session was revoked, False if not found.
    """
    session = db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False,
    ).first()

    if not session:
        return False

    _revoke(session, reason)
    return True
