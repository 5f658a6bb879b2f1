# Overview: Service-layer operations for transaction lineage; appends and walks per-product chains.

from __future__ import annotations

import secrets
from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import Location, Product, Profile, SupplyChainTransaction
from ..models.supply_chain import PRODUCTION
from ..validation import ValidationError, enforce_rules_transaction
from .concurrency import lock_for_update, run_with_retry, translate_store_errors
from .session_service import require_actor
"""
Lineage Invariants (authoritative)

- Each product has an append-only chain of transactions linked through
  previous_transaction_id, newest to oldest.
- Product.head_transaction_id is the newest transaction; only
  append_transaction moves it.
- A production transaction never links to a predecessor, but it does become
  the new head.
- Moving the head bumps Product.version_id. A concurrent append for the same
  product fails that version check (StaleDataError) and is retried from a
  fresh read, so two appends can never share a predecessor.
- blockchain_hash is an opaque random token, not a content digest.
"""

HASH_TOKEN_BYTES = 8


@dataclass
class LineageWalk:
    product_id: int
    transactions: list[SupplyChainTransaction] = field(default_factory=list)
    complete: bool = True
    problem: str | None = None

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "length": len(self.transactions),
            "complete": self.complete,
            "problem": self.problem,
            "transactions": [t.to_dict() for t in self.transactions],
        }


def generate_chain_hash() -> str:
    """Opaque identifier in the form 0x + 16 hex digits."""
    return "0x" + secrets.token_hex(HASH_TOKEN_BYTES)


@translate_store_errors
def find_latest_transaction(product_id: int) -> SupplyChainTransaction | None:
    """Most recently created transaction for a product (id breaks timestamp ties)."""
    return (
        db.session.query(SupplyChainTransaction)
        .filter(SupplyChainTransaction.product_id == product_id)
        .order_by(SupplyChainTransaction.created_at.desc(), SupplyChainTransaction.id.desc())
        .first()
    )


def current_head_id(product: Product) -> int | None:
    """
    The product's head transaction id.

    Rows written before the head pointer existed (or by other writers) fall
    back to the created_at query.
    """
    if product.head_transaction_id is not None:
        return product.head_transaction_id
    latest = find_latest_transaction(product.id)
    return latest.id if latest else None


def _require_location(location_id: int | None, label: str) -> None:
    if location_id is None:
        return
    if db.session.get(Location, location_id) is None:
        raise ValidationError(f"{label} not found")


@translate_store_errors
def append_transaction(*, actor: Profile | None, patch: dict, attempts: int | None = None) -> SupplyChainTransaction:
    """
    Append a transaction to its product's lineage.

    Args:
        actor: acting profile (required)
        patch: validated fields: product_id, transaction_type, optional
            from_location_id / to_location_id, status, extra_metadata
        attempts: retry budget for head conflicts (config default if None)

    Returns:
        The persisted SupplyChainTransaction.

    Raises:
        NotAuthenticatedError: no acting profile
        ValidationError: unknown product/location, bad type or status
        StoreError: persistence failed or head conflicts exhausted the retries
    """
    actor = require_actor(actor)

    product_id = patch.get("product_id")
    if product_id is None:
        raise ValidationError("product_id is required")
    transaction_type = patch.get("transaction_type")
    if not transaction_type:
        raise ValidationError("transaction_type is required")
    enforce_rules_transaction(patch)

    from_location_id = patch.get("from_location_id")
    to_location_id = patch.get("to_location_id")
    _require_location(from_location_id, "from_location")
    _require_location(to_location_id, "to_location")

    if transaction_type != PRODUCTION and from_location_id is None:
        current_app.logger.info(
            "Appending %s transaction for product %s without an origin location",
            transaction_type,
            product_id,
        )

    if attempts is None:
        attempts = current_app.config.get("LINEAGE_RETRY_ATTEMPTS", 3)

    def _append() -> SupplyChainTransaction:
        product = lock_for_update(
            db.session.query(Product).filter(Product.id == product_id)
        ).first()
        if product is None:
            raise ValidationError("Product not found")

        previous_id = current_head_id(product)
        if transaction_type == PRODUCTION:
            previous_id = None

        txn = SupplyChainTransaction(
            product_id=product.id,
            transaction_type=transaction_type,
            from_location_id=from_location_id,
            to_location_id=to_location_id,
            status=patch.get("status") or "pending",
            blockchain_hash=generate_chain_hash(),
            previous_transaction_id=previous_id,
            extra_metadata=patch.get("extra_metadata"),
            created_by=actor.id,
        )
        db.session.add(txn)
        db.session.flush()  # ensure txn.id exists before moving the head

        # Compare-and-set: UPDATE ... WHERE version_id = <read version>
        product.head_transaction_id = txn.id
        db.session.flush()

        db.session.commit()
        return txn

    txn = run_with_retry(_append, attempts=attempts)
    current_app.logger.info(
        "Appended transaction %s (%s) to product %s lineage; previous=%s",
        txn.id,
        txn.transaction_type,
        txn.product_id,
        txn.previous_transaction_id,
    )
    return txn


@translate_store_errors
def get_lineage(product_id: int, *, max_length: int = 10_000) -> LineageWalk:
    """
    Walk a product's lineage from the head back to its origin.

    Returns the chain newest-first. The walk stops early, with complete=False,
    if a predecessor is missing, belongs to another product, or a cycle is
    found.

    Raises:
        ValidationError: product not found
    """
    product = db.session.get(Product, product_id)
    if product is None:
        raise ValidationError("Product not found")

    walk = LineageWalk(product_id=product_id)
    next_id = current_head_id(product)
    seen: set[int] = set()

    while next_id is not None:
        if next_id in seen:
            walk.complete = False
            walk.problem = f"cycle at transaction {next_id}"
            break
        if len(walk.transactions) >= max_length:
            walk.complete = False
            walk.problem = "lineage longer than walk limit"
            break

        txn = db.session.get(SupplyChainTransaction, next_id)
        if txn is None:
            walk.complete = False
            walk.problem = f"missing transaction {next_id}"
            break
        if txn.product_id != product_id:
            walk.complete = False
            walk.problem = f"transaction {next_id} belongs to product {txn.product_id}"
            break

        seen.add(next_id)
        walk.transactions.append(txn)
        next_id = txn.previous_transaction_id

    return walk
