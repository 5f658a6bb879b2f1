# Overview: Service-layer operations for user profiles.

from __future__ import annotations

from ..extensions import db
from ..models import Profile
from ..validation import ConflictError, enforce_rules_profile
from .concurrency import commit_or_raise, translate_store_errors
from .session_service import require_actor

SELF_MUTABLE_FIELDS = {"username", "full_name", "company_name"}
ADMIN_MUTABLE_FIELDS = SELF_MUTABLE_FIELDS | {"role", "is_active"}


@translate_store_errors
def list_profiles(*, search: str | None = None) -> list[Profile]:
    query = db.session.query(Profile)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            db.or_(
                db.func.lower(Profile.username).like(pattern),
                db.func.lower(Profile.full_name).like(pattern),
                db.func.lower(Profile.company_name).like(pattern),
            )
        )
    return query.order_by(Profile.updated_at.desc(), Profile.id.desc()).all()


def _apply(profile: Profile, patch: dict, allowed: set[str]) -> Profile:
    values = {k: v for k, v in patch.items() if k in allowed}
    enforce_rules_profile(values)

    username = values.get("username")
    if username and username != profile.username:
        taken = db.session.query(Profile).filter(
            Profile.username == username,
            Profile.id != profile.id,
        ).first()
        if taken:
            raise ConflictError("Username already exists")

    for key, value in values.items():
        setattr(profile, key, value)
    commit_or_raise()
    return profile


@translate_store_errors
def update_own_profile(*, actor: Profile | None, patch: dict) -> Profile:
    """A profile may change its names but not its own role."""
    actor = require_actor(actor)
    return _apply(actor, patch, SELF_MUTABLE_FIELDS)


@translate_store_errors
def update_profile(*, profile_id: int, patch: dict) -> Profile | None:
    """Administrator update of any profile, including role and active flag."""
    profile = db.session.get(Profile, profile_id)
    if profile is None:
        return None
    return _apply(profile, patch, ADMIN_MUTABLE_FIELDS)
