# Overview: Flask API routes for supply-chain transactions; parses input and returns JSON responses.

# backend/chaintrack/routes/transactions.py
"""
Supply-chain transaction routes.

POST appends to the product's lineage (see lineage_service). After creation
only the status of a transaction can change, through PATCH /<id>/status.
"""
from flask import Blueprint, request, g, current_app
from ..services import transactions_service
from ..services.concurrency import StoreError
from ..services.lineage_service import append_transaction
from ..services.session_service import NotAuthenticatedError
from ..models import SupplyChainTransaction
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_transaction,
    ValidationError,
)
from ..decorators import require_auth, require_role, WRITE_ROLES

TRANSACTION_POLICY = ModelValidationPolicy(
    writable_fields={
        "product_id",
        "transaction_type",
        "from_location_id",
        "to_location_id",
        "status",
        "metadata",
    },
    required_on_create={"product_id", "transaction_type"},
    field_aliases={"metadata": "extra_metadata"},
)

MAX_LIST_LIMIT = 500

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    List transactions newest-first with product and location names.

    Query params:
    - product_id: int
    - status, type: exact match
    - search: substring of product name, SKU or transaction type
    - limit: int (max 500)
    """
    limit = request.args.get("limit", type=int)
    if limit is not None and not 1 <= limit <= MAX_LIST_LIMIT:
        return {"error": f"limit must be between 1 and {MAX_LIST_LIMIT}"}, 400

    try:
        views = transactions_service.list_transactions(
            product_id=request.args.get("product_id", type=int),
            status=request.args.get("status") or None,
            transaction_type=request.args.get("type") or None,
            search=request.args.get("search") or None,
            limit=limit,
        )
    except StoreError:
        current_app.logger.exception("Failed to list transactions")
        return {"error": "Storage unavailable"}, 503

    return {"items": [v.to_dict() for v in views]}, 200


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    view = transactions_service.get_transaction_view(transaction_id)
    if view is None:
        return {"error": "Transaction not found"}, 404
    return view.to_dict(), 200


@transactions_bp.post("")
@require_auth
@require_role(*WRITE_ROLES)
def create_transaction_route():
    """
    Append a transaction to its product's lineage.

    previous_transaction_id and blockchain_hash are assigned by the server.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(
            model=SupplyChainTransaction,
            payload=payload,
            policy=TRANSACTION_POLICY,
            partial=False,
        )
        enforce_rules_transaction(patch)
        txn = append_transaction(actor=g.current_user, patch=patch)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotAuthenticatedError as e:
        return {"error": str(e)}, 401
    except StoreError:
        current_app.logger.exception("Failed to append transaction")
        return {"error": "Storage unavailable"}, 503

    view = transactions_service.get_transaction_view(txn.id)
    return view.to_dict(), 201


@transactions_bp.patch("/<int:transaction_id>/status")
@require_auth
@require_role(*WRITE_ROLES)
def update_transaction_status_route(transaction_id: int):
    payload = request.get_json(silent=True) or {}
    status = payload.get("status")
    if not status:
        return {"error": "status is required"}, 400

    try:
        txn = transactions_service.update_transaction_status(
            transaction_id=transaction_id,
            status=status,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to update status of transaction %s", transaction_id)
        return {"error": "Storage unavailable"}, 503

    if txn is None:
        return {"error": "Transaction not found"}, 404

    return txn.to_dict(), 200
