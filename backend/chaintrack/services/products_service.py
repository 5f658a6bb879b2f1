# backend/chaintrack/services/products_service.py
"""
Products Service

- SKUs are unique across the catalogue (ConflictError on duplicates)
- Products with supply-chain history cannot be deleted; mark them
  inactive or discontinued instead
- head_transaction_id and version_id are owned by lineage_service and are
  never patched from here
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, Profile, SupplyChainTransaction
from ..validation import ConflictError, ValidationError
from .concurrency import commit_or_raise, translate_store_errors
from .repository import EntityRepository
from .session_service import require_actor

PRODUCT_MUTABLE_FIELDS = {"sku", "name", "description", "category", "status", "extra_metadata"}

products = EntityRepository(Product, default_order=[Product.name.asc(), Product.id.asc()])


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _sku_taken(sku: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(Product).filter(Product.sku == sku)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    return query.first() is not None


@translate_store_errors
def list_products(
    *,
    status: str | None = None,
    category: str | None = None,
    search: str | None = None,
) -> list[Product]:
    """
    Products ordered by name.

    search matches name, SKU or category (case-insensitive substring).
    """
    if not search:
        filters = {}
        if status:
            filters["status"] = status
        if category:
            filters["category"] = category
        return products.list(filters)

    pattern = f"%{search.strip().lower()}%"
    query = db.session.query(Product).filter(
        db.or_(
            db.func.lower(Product.name).like(pattern),
            db.func.lower(Product.sku).like(pattern),
            db.func.lower(Product.category).like(pattern),
        )
    )
    if status:
        query = query.filter(Product.status == status)
    if category:
        query = query.filter(Product.category == category)
    return query.order_by(Product.name.asc(), Product.id.asc()).all()


def get_product(product_id: int) -> Product | None:
    return products.get(product_id)


@translate_store_errors
def create_product(*, actor: Profile | None, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        NotAuthenticatedError: no acting profile
        ValidationError: sku missing
        ConflictError: SKU already exists
    """
    actor = require_actor(actor)

    sku = patch.get("sku")
    if not sku:
        raise ValidationError("sku is required")
    if _sku_taken(sku):
        raise ConflictError("SKU already exists.")

    p = Product(created_by=actor.id, status="active")
    apply_product_patch(p, patch)

    db.session.add(p)
    commit_or_raise()
    return p


@translate_store_errors
def update_product(*, product_id: int, patch: dict) -> Product | None:
    """
    Update a product.

    Returns:
        Updated product, or None if not found

    Raises:
        ConflictError: If new SKU already exists
    """
    p = products.get(product_id)
    if not p:
        return None

    if "sku" in patch and patch["sku"] != p.sku and _sku_taken(patch["sku"], exclude_id=p.id):
        raise ConflictError("SKU already exists.")

    apply_product_patch(p, patch)
    commit_or_raise()
    return p


@translate_store_errors
def delete_product(*, product_id: int) -> bool:
    """
    Delete a product with no supply-chain history.

    Returns:
        True if deleted, False if not found

    Raises:
        ConflictError: product has transactions
    """
    p = products.get(product_id)
    if not p:
        return False

    has_history = db.session.query(SupplyChainTransaction.id).filter(
        SupplyChainTransaction.product_id == product_id
    ).first()
    if has_history:
        raise ConflictError("Product has supply-chain transactions; set status to inactive or discontinued instead.")

    return products.delete(product_id)
