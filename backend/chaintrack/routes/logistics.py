# Overview: Flask API routes for logistics details; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app
from ..services import logistics_service
from ..services.concurrency import StoreError
from ..services.session_service import NotAuthenticatedError
from ..models import LogisticsDetail
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_logistics,
    ValidationError,
)
from ..decorators import require_auth, require_role, WRITE_ROLES

LOGISTICS_POLICY = ModelValidationPolicy(
    writable_fields={
        "transaction_id",
        "temperature",
        "humidity",
        "transport_vehicle",
        "transport_duration",
        "storage_conditions",
        "quality_checks",
        "additional_data",
    },
    required_on_create={"transaction_id"},
)

logistics_bp = Blueprint("logistics", __name__, url_prefix="/api/logistics")


@logistics_bp.get("")
@require_auth
def list_logistics_route():
    """Query params: transaction_id (int)."""
    details = logistics_service.list_logistics(
        transaction_id=request.args.get("transaction_id", type=int),
    )
    return {"items": [logistics_service.logistics_to_dict(d) for d in details]}, 200


@logistics_bp.get("/options")
@require_auth
def logistics_options_route():
    """Vehicle and storage choices offered by the dashboard forms."""
    return {
        "transport_vehicles": list(logistics_service.TRANSPORT_VEHICLES),
        "storage_conditions": list(logistics_service.STORAGE_CONDITIONS),
    }, 200


@logistics_bp.get("/<int:detail_id>")
@require_auth
def get_logistics_route(detail_id: int):
    detail = logistics_service.get_logistics(detail_id)
    if detail is None:
        return {"error": "Logistics details not found"}, 404
    return logistics_service.logistics_to_dict(detail), 200


@logistics_bp.post("")
@require_auth
@require_role(*WRITE_ROLES)
def create_logistics_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=LogisticsDetail,
            payload=payload,
            policy=LOGISTICS_POLICY,
            partial=False,
        )
        enforce_rules_logistics(patch)
        detail = logistics_service.create_logistics(
            actor=g.current_user,
            transaction_id=patch.pop("transaction_id", None),
            patch=patch,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotAuthenticatedError as e:
        return {"error": str(e)}, 401
    except StoreError:
        current_app.logger.exception("Failed to create logistics details")
        return {"error": "Storage unavailable"}, 503

    return logistics_service.logistics_to_dict(detail), 201


@logistics_bp.put("/<int:detail_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_logistics_route(detail_id: int):
    payload = request.get_json(silent=True) or {}
    if "transaction_id" in payload:
        return {"error": "transaction_id cannot be changed"}, 400

    try:
        patch = validate_payload(
            model=LogisticsDetail,
            payload=payload,
            policy=LOGISTICS_POLICY,
            partial=True,
        )
        enforce_rules_logistics(patch)
        detail = logistics_service.update_logistics(detail_id=detail_id, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to update logistics details %s", detail_id)
        return {"error": "Storage unavailable"}, 503

    if detail is None:
        return {"error": "Logistics details not found"}, 404

    return logistics_service.logistics_to_dict(detail), 200


@logistics_bp.delete("/<int:detail_id>")
@require_auth
@require_role(*WRITE_ROLES)
def delete_logistics_route(detail_id: int):
    try:
        deleted = logistics_service.delete_logistics(detail_id=detail_id)
    except StoreError:
        current_app.logger.exception("Failed to delete logistics details %s", detail_id)
        return {"error": "Storage unavailable"}, 503

    if not deleted:
        return {"error": "Logistics details not found"}, 404

    return {"ok": True}, 200
