# Overview: Service-layer reads and status updates for supply-chain transactions.

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import aliased

from ..extensions import db
from ..models import Location, Product, SupplyChainTransaction
from ..models.supply_chain import TRANSACTION_STATUSES
from ..validation import ValidationError
from .concurrency import commit_or_raise, translate_store_errors


@dataclass(frozen=True)
class TransactionView:
    """
    A transaction with its joined display fields.

    Join fields are Optional: a transaction may have no locations, and a
    product row can disappear underneath historical data.
    """
    transaction: SupplyChainTransaction
    product_name: str | None
    product_sku: str | None
    from_location_name: str | None
    to_location_name: str | None

    def to_dict(self) -> dict:
        data = self.transaction.to_dict()
        data["product"] = (
            {"name": self.product_name, "sku": self.product_sku}
            if self.product_name is not None else None
        )
        data["from_location"] = {"name": self.from_location_name} if self.from_location_name is not None else None
        data["to_location"] = {"name": self.to_location_name} if self.to_location_name is not None else None
        return data


def _view_query():
    from_loc = aliased(Location)
    to_loc = aliased(Location)
    query = (
        db.session.query(
            SupplyChainTransaction,
            Product.name,
            Product.sku,
            from_loc.name,
            to_loc.name,
        )
        .outerjoin(Product, SupplyChainTransaction.product_id == Product.id)
        .outerjoin(from_loc, SupplyChainTransaction.from_location_id == from_loc.id)
        .outerjoin(to_loc, SupplyChainTransaction.to_location_id == to_loc.id)
    )
    return query


def _to_view(row) -> TransactionView:
    txn, product_name, product_sku, from_name, to_name = row
    return TransactionView(
        transaction=txn,
        product_name=product_name,
        product_sku=product_sku,
        from_location_name=from_name,
        to_location_name=to_name,
    )


@translate_store_errors
def list_transactions(
    *,
    product_id: int | None = None,
    status: str | None = None,
    transaction_type: str | None = None,
    search: str | None = None,
    limit: int | None = None,
) -> list[TransactionView]:
    """
    Transactions newest-first with product and location names.

    search matches product name, product SKU or transaction type
    (case-insensitive substring).
    """
    query = _view_query()

    if product_id is not None:
        query = query.filter(SupplyChainTransaction.product_id == product_id)
    if status:
        query = query.filter(SupplyChainTransaction.status == status)
    if transaction_type:
        query = query.filter(SupplyChainTransaction.transaction_type == transaction_type)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            db.or_(
                db.func.lower(Product.name).like(pattern),
                db.func.lower(Product.sku).like(pattern),
                db.func.lower(SupplyChainTransaction.transaction_type).like(pattern),
            )
        )

    query = query.order_by(SupplyChainTransaction.created_at.desc(), SupplyChainTransaction.id.desc())
    if limit is not None:
        query = query.limit(limit)

    return [_to_view(row) for row in query.all()]


@translate_store_errors
def get_transaction_view(transaction_id: int) -> TransactionView | None:
    row = _view_query().filter(SupplyChainTransaction.id == transaction_id).first()
    return _to_view(row) if row else None


@translate_store_errors
def update_transaction_status(*, transaction_id: int, status: str) -> SupplyChainTransaction | None:
    """
    Change a transaction's status. Nothing else about a transaction is mutable.

    Returns None if the transaction does not exist.
    """
    if status not in TRANSACTION_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(TRANSACTION_STATUSES)}")

    txn = db.session.get(SupplyChainTransaction, transaction_id)
    if txn is None:
        return None

    txn.status = status
    commit_or_raise()
    return txn
