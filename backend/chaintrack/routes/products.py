# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/chaintrack/routes/products.py
"""
Product catalogue routes and the per-product lineage walk.

SECURITY: All routes require authentication.
- Read operations are open to every role
- Write operations require Administrator, Manager or Operator
"""
from flask import Blueprint, request, g, current_app
from ..services import products_service
from ..services.concurrency import StoreError
from ..services.lineage_service import get_lineage
from ..services.session_service import NotAuthenticatedError
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
    ConflictError,
)
from ..decorators import require_auth, require_role, WRITE_ROLES

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "name", "description", "category", "status", "metadata"},
    required_on_create={"sku", "name", "category"},
    field_aliases={"metadata": "extra_metadata"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    List products ordered by name.

    Query params:
    - status: active | inactive | discontinued
    - category: exact category
    - search: substring of name, SKU or category
    """
    try:
        items = products_service.list_products(
            status=request.args.get("status") or None,
            category=request.args.get("category") or None,
            search=request.args.get("search") or None,
        )
    except StoreError:
        current_app.logger.exception("Failed to list products")
        return {"error": "Storage unavailable"}, 503

    return {"items": [p.to_dict() for p in items]}, 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    p = products_service.get_product(product_id)
    if not p:
        return {"error": "Product not found"}, 404
    return p.to_dict(), 200


@products_bp.get("/<int:product_id>/lineage")
@require_auth
def product_lineage_route(product_id: int):
    """Transactions of the product newest-first, following previous_transaction_id."""
    try:
        walk = get_lineage(product_id)
    except ValidationError as e:
        return {"error": str(e)}, 404

    if not walk.complete:
        current_app.logger.warning("Lineage of product %s is broken: %s", product_id, walk.problem)

    return walk.to_dict(), 200


@products_bp.post("")
@require_auth
@require_role(*WRITE_ROLES)
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        created = products_service.create_product(actor=g.current_user, patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except NotAuthenticatedError as e:
        return {"error": str(e)}, 401
    except ValidationError as e:
        return {"error": str(e)}, 400
    except StoreError:
        current_app.logger.exception("Failed to create product")
        return {"error": "Storage unavailable"}, 503

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        updated = products_service.update_product(product_id=product_id, patch=patch)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError:
        current_app.logger.exception("Failed to update product %s", product_id)
        return {"error": "Storage unavailable"}, 503

    if not updated:
        return {"error": "Product not found"}, 404

    return updated.to_dict(), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role(*WRITE_ROLES)
def delete_product_route(product_id: int):
    """Products with supply-chain history cannot be deleted (409)."""
    try:
        deleted = products_service.delete_product(product_id=product_id)
    except ConflictError as e:
        return {"error": str(e)}, 409
    except StoreError:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return {"error": "Storage unavailable"}, 503

    if not deleted:
        return {"error": "Product not found"}, 404

    return {"ok": True}, 200
