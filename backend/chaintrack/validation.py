from __future__ import annotations
from datetime import datetime
from chaintrack.time_utils import parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from chaintrack.models.auth import PROFILE_ROLES
from chaintrack.models.catalog import LOCATION_TYPES, PRODUCT_STATUSES
from chaintrack.models.communications import NOTIFICATION_STATUSES, NOTIFICATION_TYPES
from chaintrack.models.reports import REPORT_FREQUENCIES, REPORT_STATUSES, REPORT_TYPES
from chaintrack.models.supply_chain import TRANSACTION_STATUSES, TRANSACTION_TYPES


MIN_USERNAME_LENGTH = 3


class ValidationError(ValueError):
    """400-level input problem (malformed payload, unresolved reference)."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - field_aliases: payload key -> model attribute, for columns whose
      attribute name differs from the public name (e.g. "metadata")
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    field_aliases: dict[str, str] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {prop.key: prop.columns[0] for prop in mapper.column_attrs}


def _coerce_value(key: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{key} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")
        if isinstance(value, float):
            raise ValidationError(f"{key} must be an integer, not a decimal")
        raise ValidationError(f"{key} must be an integer")

    # Floats (sensor readings, coordinates)
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{key} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{key} must be a number")
        raise ValidationError(f"{key} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{key} must be a datetime")

    # JSON maps
    if isinstance(coltype, JSON):
        if not isinstance(value, dict):
            raise ValidationError(f"{key} must be an object")
        return value

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model attribute.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if policy.field_aliases.get(k, k) not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        attr = policy.field_aliases.get(k, k)
        col = cols[attr]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[attr] = None
            continue

        val = _coerce_value(k, col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[attr] = val

    return patch


def _require_choice(patch: dict, key: str, choices: tuple[str, ...]) -> None:
    if key in patch and patch[key] is not None and patch[key] not in choices:
        raise ValidationError(f"{key} must be one of: {', '.join(choices)}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _require_choice(patch, "status", PRODUCT_STATUSES)


def enforce_rules_location(patch: dict) -> None:
    _require_choice(patch, "type", LOCATION_TYPES)

    if "latitude" in patch and patch["latitude"] is not None:
        if not -90.0 <= patch["latitude"] <= 90.0:
            raise ValidationError("latitude must be between -90 and 90")
    if "longitude" in patch and patch["longitude"] is not None:
        if not -180.0 <= patch["longitude"] <= 180.0:
            raise ValidationError("longitude must be between -180 and 180")


def enforce_coordinate_pair(latitude: float | None, longitude: float | None) -> None:
    # Half a coordinate pair is meaningless
    if (latitude is None) != (longitude is None):
        raise ValidationError("latitude and longitude must be provided together")


def enforce_rules_transaction(patch: dict) -> None:
    _require_choice(patch, "transaction_type", TRANSACTION_TYPES)
    _require_choice(patch, "status", TRANSACTION_STATUSES)


def enforce_rules_logistics(patch: dict) -> None:
    if "humidity" in patch and patch["humidity"] is not None:
        if not 0.0 <= patch["humidity"] <= 100.0:
            raise ValidationError("humidity must be between 0 and 100")


def enforce_rules_notification(patch: dict) -> None:
    _require_choice(patch, "type", NOTIFICATION_TYPES)
    _require_choice(patch, "status", NOTIFICATION_STATUSES)


def enforce_rules_report(patch: dict) -> None:
    _require_choice(patch, "type", REPORT_TYPES)
    _require_choice(patch, "frequency", REPORT_FREQUENCIES)
    _require_choice(patch, "status", REPORT_STATUSES)


def enforce_rules_profile(patch: dict) -> None:
    _require_choice(patch, "role", PROFILE_ROLES)

    username = patch.get("username")
    if username is not None and len(username) < MIN_USERNAME_LENGTH:
        raise ValidationError(f"username must be at least {MIN_USERNAME_LENGTH} characters long")
