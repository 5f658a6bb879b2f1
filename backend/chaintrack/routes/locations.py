# Overview: Flask API routes for locations operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app
from ..services import locations_service
from ..services.concurrency import StoreError
from ..models import Location
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_location,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role, WRITE_ROLES

LOCATION_POLICY = ModelValidationPolicy(
    writable_fields={"name", "address", "type", "latitude", "longitude", "metadata"},
    required_on_create={"name", "address", "type"},
    field_aliases={"metadata": "extra_metadata"},
)

locations_bp = Blueprint("locations", __name__, url_prefix="/api/locations")


@locations_bp.get("")
@require_auth
def list_locations():
    """Query params: type (warehouse | distribution_center | retail)."""
    items = locations_service.list_locations(location_type=request.args.get("type") or None)
    return {"items": [loc.to_dict() for loc in items]}, 200


@locations_bp.get("/<int:location_id>")
@require_auth
def get_location_route(location_id: int):
    loc = locations_service.get_location(location_id)
    if not loc:
        return {"error": "Location not found"}, 404
    return loc.to_dict(), 200


@locations_bp.post("")
@require_auth
@require_role(*WRITE_ROLES)
def create_location_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=False)
        enforce_rules_location(patch)
        created = locations_service.create_location(patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to create location")
        return {"error": "Storage unavailable"}, 503

    return created.to_dict(), 201


@locations_bp.put("/<int:location_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_location_route(location_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Location, payload=payload, policy=LOCATION_POLICY, partial=True)
        enforce_rules_location(patch)
        updated = locations_service.update_location(location_id=location_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to update location %s", location_id)
        return {"error": "Storage unavailable"}, 503

    if not updated:
        return {"error": "Location not found"}, 404

    return updated.to_dict(), 200


@locations_bp.delete("/<int:location_id>")
@require_auth
@require_role(*WRITE_ROLES)
def delete_location_route(location_id: int):
    try:
        deleted = locations_service.delete_location(location_id=location_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError:
        current_app.logger.exception("Failed to delete location %s", location_id)
        return {"error": "Storage unavailable"}, 503

    if not deleted:
        return {"error": "Location not found"}, 404

    return {"ok": True}, 200
