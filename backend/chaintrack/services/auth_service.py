# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every write is attributed to a profile. Uses bcrypt for password
hashing and validates password strength.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from ..extensions import db
from ..models import Profile
from ..models.auth import ROLE_OPERATOR
from ..validation import ConflictError, enforce_rules_profile
from .concurrency import commit_or_raise, translate_store_errors
from chaintrack.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Returns True if password matches hash, False otherwise."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash (e.g. seeded placeholder)
        return False


@translate_store_errors
def create_profile(
    *,
    username: str,
    email: str,
    password: str,
    full_name: str | None = None,
    company_name: str | None = None,
    role: str = ROLE_OPERATOR,
) -> Profile:
    """
    Create a profile with a hashed password.

    Raises:
        PasswordValidationError: weak password
        ValidationError: bad username or role
        ConflictError: username or email already taken
    """
    username = username.strip()
    email = email.strip().lower()
    enforce_rules_profile({"username": username, "role": role})

    existing = db.session.query(Profile).filter(
        db.or_(Profile.username == username, Profile.email == email)
    ).first()
    if existing:
        raise ConflictError("Username or email already exists")

    profile = Profile(
        username=username,
        email=email,
        password_hash=hash_password(password),
        full_name=full_name,
        company_name=company_name,
        role=role,
        is_active=True,
    )
    db.session.add(profile)
    commit_or_raise()
    return profile


@translate_store_errors
def authenticate(identifier: str, password: str) -> Profile | None:
    """
    Authenticate by username or email.

    Returns the profile on success, None on bad credentials or inactive account.
    """
    identifier = identifier.strip()
    profile = db.session.query(Profile).filter(
        db.or_(Profile.username == identifier, Profile.email == identifier.lower())
    ).first()

    if not profile or not profile.is_active:
        return None

    if not verify_password(password, profile.password_hash):
        return None

    profile.last_login_at = utcnow()
    commit_or_raise()
    return profile
