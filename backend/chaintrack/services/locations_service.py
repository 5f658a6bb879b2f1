# Overview: Service-layer operations for locations; encapsulates business logic and database work.

from __future__ import annotations

from ..extensions import db
from ..models import Location, SupplyChainTransaction
from ..validation import ConflictError, enforce_coordinate_pair
from .concurrency import translate_store_errors
from .repository import EntityRepository

LOCATION_MUTABLE_FIELDS = {"name", "address", "type", "latitude", "longitude", "extra_metadata"}

locations = EntityRepository(Location, default_order=[Location.name.asc(), Location.id.asc()])


def list_locations(*, location_type: str | None = None) -> list[Location]:
    filters = {"type": location_type} if location_type else None
    return locations.list(filters)


def get_location(location_id: int) -> Location | None:
    return locations.get(location_id)


def create_location(*, patch: dict) -> Location:
    values = {k: v for k, v in patch.items() if k in LOCATION_MUTABLE_FIELDS}
    enforce_coordinate_pair(values.get("latitude"), values.get("longitude"))
    return locations.insert(values)


def update_location(*, location_id: int, patch: dict) -> Location | None:
    loc = locations.get(location_id)
    if loc is None:
        return None

    values = {k: v for k, v in patch.items() if k in LOCATION_MUTABLE_FIELDS}
    enforce_coordinate_pair(
        values.get("latitude", loc.latitude),
        values.get("longitude", loc.longitude),
    )
    return locations.update(location_id, values)


@translate_store_errors
def delete_location(*, location_id: int) -> bool:
    """
    Delete a location that no transaction references.

    Raises ConflictError while transactions use it as origin or destination.
    """
    loc = locations.get(location_id)
    if loc is None:
        return False

    in_use = db.session.query(SupplyChainTransaction.id).filter(
        db.or_(
            SupplyChainTransaction.from_location_id == location_id,
            SupplyChainTransaction.to_location_id == location_id,
        )
    ).first()
    if in_use:
        raise ConflictError("Location is referenced by supply-chain transactions.")

    return locations.delete(location_id)
