# Overview: Service-layer operations for logistics details attached to transactions.

from __future__ import annotations

from ..extensions import db
from ..models import LogisticsDetail, Profile, SupplyChainTransaction
from ..validation import ValidationError
from .concurrency import translate_store_errors
from .repository import EntityRepository
from .session_service import require_actor

LOGISTICS_MUTABLE_FIELDS = {
    "temperature",
    "humidity",
    "transport_vehicle",
    "transport_duration",
    "storage_conditions",
    "quality_checks",
    "additional_data",
}

TRANSPORT_VEHICLES = ("Truck", "Van", "Ship", "Airplane", "Train", "Other")
STORAGE_CONDITIONS = (
    "Room Temperature",
    "Refrigerated",
    "Frozen",
    "Climate Controlled",
    "Humidity Controlled",
)

logistics = EntityRepository(LogisticsDetail)


def logistics_to_dict(detail: LogisticsDetail) -> dict:
    """Detail plus a summary of its parent transaction (None if it is gone)."""
    data = detail.to_dict()
    txn = detail.transaction
    data["transaction"] = (
        {
            "id": txn.id,
            "product_id": txn.product_id,
            "transaction_type": txn.transaction_type,
            "from_location_id": txn.from_location_id,
            "to_location_id": txn.to_location_id,
            "status": txn.status,
        }
        if txn is not None else None
    )
    return data


def list_logistics(*, transaction_id: int | None = None) -> list[LogisticsDetail]:
    filters = {"transaction_id": transaction_id} if transaction_id is not None else None
    return logistics.list(filters, order_by=[LogisticsDetail.id.desc()])


def get_logistics(detail_id: int) -> LogisticsDetail | None:
    return logistics.get(detail_id)


@translate_store_errors
def create_logistics(*, actor: Profile | None, transaction_id: int | None, patch: dict) -> LogisticsDetail:
    """
    Attach logistics readings to an existing transaction.

    Raises:
        NotAuthenticatedError: no acting profile
        ValidationError: transaction missing or unknown
    """
    require_actor(actor)

    if transaction_id is None:
        raise ValidationError("transaction_id is required")
    if db.session.get(SupplyChainTransaction, transaction_id) is None:
        raise ValidationError("Transaction not found")

    values = {k: v for k, v in patch.items() if k in LOGISTICS_MUTABLE_FIELDS}
    if values.get("quality_checks") is None:
        values["quality_checks"] = {}
    values["transaction_id"] = transaction_id
    return logistics.insert(values)


def update_logistics(*, detail_id: int, patch: dict) -> LogisticsDetail | None:
    """The parent transaction is fixed; only readings and descriptors change."""
    values = {k: v for k, v in patch.items() if k in LOGISTICS_MUTABLE_FIELDS}
    return logistics.update(detail_id, values)


def delete_logistics(*, detail_id: int) -> bool:
    return logistics.delete(detail_id)
