"""
Lineage tests.

Verifies:
- production transactions never link to a predecessor
- every other transaction links to the product's head at creation time
- the head pointer moves under a version compare-and-set
- the lineage walk returns the chain newest-first and flags broken links
"""

import re

import pytest
from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from chaintrack.extensions import db
from chaintrack.models import Product, SupplyChainTransaction
from chaintrack.services import lineage_service
from chaintrack.services.concurrency import StoreError, run_with_retry
from chaintrack.services.session_service import NotAuthenticatedError
from chaintrack.validation import ValidationError


def _append(actor, product, transaction_type, **extra):
    patch = {"product_id": product.id, "transaction_type": transaction_type}
    patch.update(extra)
    return lineage_service.append_transaction(actor=actor, patch=patch)


class TestAppendTransaction:

    def test_production_has_no_previous(self, operator, product):
        txn = _append(operator, product, "production")
        assert txn.previous_transaction_id is None

    def test_production_after_history_still_has_no_previous(self, operator, product):
        _append(operator, product, "production")
        _append(operator, product, "transport")
        again = _append(operator, product, "production")
        assert again.previous_transaction_id is None

    def test_delivery_links_to_latest_transport(self, operator, product, warehouse, store):
        production = _append(operator, product, "production", to_location_id=warehouse.id)
        transport = _append(
            operator, product, "transport",
            from_location_id=warehouse.id, to_location_id=store.id,
        )
        delivery = _append(operator, product, "delivery", to_location_id=store.id)

        assert transport.previous_transaction_id == production.id
        assert delivery.previous_transaction_id == transport.id

    def test_links_stay_within_product(self, db_session, operator, product):
        other = Product(sku="TEA-001", name="Green Tea", category="Food & Beverage", created_by=operator.id)
        db_session.add(other)
        db_session.commit()

        first = _append(operator, product, "production")
        _append(operator, other, "production")
        second = _append(operator, product, "storage")

        assert second.previous_transaction_id == first.id

    def test_head_moves_and_version_bumps(self, db_session, operator, product):
        assert product.head_transaction_id is None
        start_version = product.version_id

        txn = _append(operator, product, "production")
        db_session.refresh(product)

        assert product.head_transaction_id == txn.id
        assert product.version_id == start_version + 1

    def test_falls_back_to_latest_when_head_missing(self, db_session, operator, product):
        legacy = SupplyChainTransaction(
            product_id=product.id,
            transaction_type="production",
            status="completed",
            blockchain_hash=lineage_service.generate_chain_hash(),
            created_by=operator.id,
        )
        db_session.add(legacy)
        db_session.commit()
        assert product.head_transaction_id is None

        txn = _append(operator, product, "transport")
        assert txn.previous_transaction_id == legacy.id

    def test_hash_token_format(self, operator, product):
        txn = _append(operator, product, "production")
        assert re.fullmatch(r"0x[0-9a-f]{16}", txn.blockchain_hash)

    def test_default_status_pending(self, operator, product):
        txn = _append(operator, product, "production")
        assert txn.status == "pending"

    def test_requires_actor(self, product):
        with pytest.raises(NotAuthenticatedError):
            lineage_service.append_transaction(
                actor=None,
                patch={"product_id": product.id, "transaction_type": "production"},
            )

    def test_unknown_product(self, operator):
        with pytest.raises(ValidationError):
            lineage_service.append_transaction(
                actor=operator,
                patch={"product_id": 999999, "transaction_type": "production"},
            )

    def test_unknown_location(self, operator, product):
        with pytest.raises(ValidationError):
            _append(operator, product, "transport", from_location_id=424242)

    def test_unknown_type(self, operator, product):
        with pytest.raises(ValidationError):
            _append(operator, product, "teleport")


class TestHeadCompareAndSet:
    """A concurrent writer that moved the head first is detected, and retried."""

    def test_stale_version_detected(self, db_session, operator, product):
        p = db_session.get(Product, product.id)
        assert p.version_id == 1
        db_session.execute(
            text("UPDATE products SET version_id = version_id + 1 WHERE id = :id"),
            {"id": p.id},
        )
        p.head_transaction_id = 12345
        with pytest.raises(StaleDataError):
            db_session.flush()
        db_session.rollback()

    def test_retry_recovers_after_conflict(self, db_session):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise StaleDataError("head moved")
            return "ok"

        assert run_with_retry(flaky, attempts=3, backoff_base=0) == "ok"
        assert len(calls) == 2

    def test_retry_gives_up_with_store_error(self, db_session):
        def always_conflicts():
            raise StaleDataError("head moved")

        with pytest.raises(StoreError) as excinfo:
            run_with_retry(always_conflicts, attempts=2, backoff_base=0)
        assert isinstance(excinfo.value.__cause__, StaleDataError)


class TestLineageWalk:

    def test_walk_newest_first(self, operator, product):
        a = _append(operator, product, "production")
        b = _append(operator, product, "transport")
        c = _append(operator, product, "delivery")

        walk = lineage_service.get_lineage(product.id)

        assert walk.complete is True
        assert [t.id for t in walk.transactions] == [c.id, b.id, a.id]
        assert walk.to_dict()["length"] == 3

    def test_empty_lineage(self, product):
        walk = lineage_service.get_lineage(product.id)
        assert walk.transactions == []
        assert walk.complete is True

    def test_missing_predecessor_flagged(self, db_session, operator, product):
        _append(operator, product, "production")
        head = _append(operator, product, "transport")
        # Point the head at a row that does not exist
        db_session.execute(
            text("UPDATE supply_chain_transactions SET previous_transaction_id = 987654 WHERE id = :id"),
            {"id": head.id},
        )
        db_session.commit()
        db_session.expire_all()

        walk = lineage_service.get_lineage(product.id)

        assert walk.complete is False
        assert "987654" in walk.problem
        assert [t.id for t in walk.transactions] == [head.id]

    def test_unknown_product(self, db_session):
        with pytest.raises(ValidationError):
            lineage_service.get_lineage(999999)

    def test_find_latest_transaction(self, operator, product):
        assert lineage_service.find_latest_transaction(product.id) is None
        _append(operator, product, "production")
        latest = _append(operator, product, "transport")
        assert lineage_service.find_latest_transaction(product.id).id == latest.id
