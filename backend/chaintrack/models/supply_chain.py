from __future__ import annotations

from ..extensions import db
from chaintrack.time_utils import to_utc_z


PRODUCTION = "production"
TRANSACTION_TYPES = (PRODUCTION, "transport", "storage", "delivery")
TRANSACTION_STATUSES = ("pending", "in_progress", "completed", "failed")


class SupplyChainTransaction(db.Model):
    """
    One step in a product's supply-chain history.

    LINEAGE INVARIANTS:
    - A production transaction has no previous_transaction_id (head of a lineage).
    - Any other transaction links to the product's head at creation time.
    - product_id, transaction_type, locations, blockchain_hash and
      previous_transaction_id are written once; only status is mutable.

    blockchain_hash is an opaque random token. It is NOT a content hash and
    nothing verifies it.
    """
    __tablename__ = "supply_chain_transactions"
    __table_args__ = (
        db.Index("ix_sct_product_created", "product_id", "created_at"),
        db.Index("ix_sct_type_status", "transaction_type", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    transaction_type = db.Column(db.String(16), nullable=False, index=True)

    from_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)
    to_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    blockchain_hash = db.Column(db.String(66), nullable=False)
    previous_transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("supply_chain_transactions.id"),
        nullable=True,
        index=True,
    )

    extra_metadata = db.Column("metadata", db.JSON, nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("profiles.id"), nullable=False, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    product = db.relationship("Product", backref=db.backref("transactions", lazy=True))
    from_location = db.relationship("Location", foreign_keys=[from_location_id])
    to_location = db.relationship("Location", foreign_keys=[to_location_id])
    previous_transaction = db.relationship("SupplyChainTransaction", remote_side=[id])
    creator = db.relationship("Profile", foreign_keys=[created_by])

    def __repr__(self) -> str:
        return (
            f"<SupplyChainTransaction id={self.id} product_id={self.product_id} "
            f"type={self.transaction_type} prev={self.previous_transaction_id}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "transaction_type": self.transaction_type,
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "status": self.status,
            "blockchain_hash": self.blockchain_hash,
            "previous_transaction_id": self.previous_transaction_id,
            "metadata": self.extra_metadata,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }


class LogisticsDetail(db.Model):
    """
    Environmental and transport readings for a transaction.

    One-to-one with a transaction by convention only (no unique constraint).
    transport_duration is free text such as "2 hours"; analytics parse the
    leading integer.
    """
    __tablename__ = "logistics_details"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(
        db.Integer,
        db.ForeignKey("supply_chain_transactions.id"),
        nullable=False,
        index=True,
    )

    temperature = db.Column(db.Float, nullable=True)  # degrees Celsius
    humidity = db.Column(db.Float, nullable=True)  # percent

    transport_vehicle = db.Column(db.String(64), nullable=True)
    transport_duration = db.Column(db.String(64), nullable=True)
    storage_conditions = db.Column(db.String(64), nullable=True)

    quality_checks = db.Column(db.JSON, nullable=True)
    additional_data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    transaction = db.relationship(
        "SupplyChainTransaction",
        backref=db.backref("logistics_details", lazy=True),
    )

    def __repr__(self) -> str:
        return f"<LogisticsDetail id={self.id} transaction_id={self.transaction_id}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "transport_vehicle": self.transport_vehicle,
            "transport_duration": self.transport_duration,
            "storage_conditions": self.storage_conditions,
            "quality_checks": self.quality_checks,
            "additional_data": self.additional_data,
            "created_at": to_utc_z(self.created_at),
        }
