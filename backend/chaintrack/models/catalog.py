from __future__ import annotations

from ..extensions import db
from chaintrack.time_utils import to_utc_z


PRODUCT_STATUSES = ("active", "inactive", "discontinued")
LOCATION_TYPES = ("warehouse", "distribution_center", "retail")


class Product(db.Model):
    """
    Product master data.

    LINEAGE HEAD:
    head_transaction_id points at the most recently appended supply-chain
    transaction for this product. It is moved only by
    lineage_service.append_transaction, which relies on version_id to
    detect a concurrent append (compare-and-set on the head).

    The column is deliberately not a foreign key: products and transactions
    would otherwise reference each other and need deferred DDL.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_status_name", "status", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    sku = db.Column(db.String(64), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(64), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="active", index=True)

    extra_metadata = db.Column("metadata", db.JSON, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=True, index=True)

    head_transaction_id = db.Column(db.Integer, nullable=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    creator = db.relationship("Profile", foreign_keys=[created_by])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "status": self.status,
            "metadata": self.extra_metadata,
            "created_by": self.created_by,
            "head_transaction_id": self.head_transaction_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Location(db.Model):
    """Origin/destination of supply-chain transactions."""
    __tablename__ = "locations"
    __table_args__ = (
        db.Index("ix_locations_type_name", "type", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(500), nullable=False)
    type = db.Column(db.String(32), nullable=False, index=True)

    # Coordinate pair: both set or both null
    latitude = db.Column(db.Float, nullable=True)
    longitude = db.Column(db.Float, nullable=True)

    extra_metadata = db.Column("metadata", db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Location id={self.id} name={self.name!r} type={self.type}>"

    @property
    def coordinates(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict:
        coords = self.coordinates
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "type": self.type,
            "coordinates": {"latitude": coords[0], "longitude": coords[1]} if coords else None,
            "metadata": self.extra_metadata,
            "created_at": to_utc_z(self.created_at),
        }
