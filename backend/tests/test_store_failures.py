"""
Storage failure handling.

Verifies:
- Raw SQLAlchemy failures inside services surface as StoreError
- Every route answers a StoreError with 503, including routes without
  their own handler
"""

import pytest
from sqlalchemy.exc import OperationalError

from chaintrack.services import (
    analytics_service,
    notifications_service,
    profiles_service,
    session_service,
    transactions_service,
)
from chaintrack.services.concurrency import StoreError, translate_store_errors


def _locked(*args, **kwargs):
    raise OperationalError("SELECT 1", {}, Exception("database is locked"))


class _BrokenQuery:
    """Chains like a Query; fails when rows are fetched."""

    def __getattr__(self, name):
        return lambda *args, **kwargs: self

    def all(self):
        _locked()

    def first(self):
        _locked()


class TestTranslateStoreErrors:

    def test_sqlalchemy_error_becomes_store_error(self, db_session):
        wrapped = translate_store_errors(_locked)
        with pytest.raises(StoreError, match="database is locked"):
            wrapped()

    def test_other_errors_pass_through(self):
        @translate_store_errors
        def bad_input():
            raise ValueError("not a store problem")

        with pytest.raises(ValueError):
            bad_input()

    def test_list_transactions_raw_query(self, db_session, monkeypatch):
        monkeypatch.setattr(transactions_service, "_view_query", lambda: _BrokenQuery())
        with pytest.raises(StoreError):
            transactions_service.list_transactions(search="coffee")


class TestStoreFailureResponses:

    def test_notification_insert(self, client, operator_headers, monkeypatch):
        def fail_insert(values):
            raise StoreError("disk I/O error")

        monkeypatch.setattr(notifications_service.notifications, "insert", fail_insert)
        resp = client.post(
            "/api/notifications",
            json={"title": "T", "message": "M"},
            headers=operator_headers,
        )
        assert resp.status_code == 503
        assert resp.json == {"error": "Storage unavailable"}

    def test_notification_listing(self, client, operator_headers, monkeypatch):
        monkeypatch.setattr(notifications_service.notifications, "list", _locked)
        resp = client.get("/api/notifications", headers=operator_headers)
        assert resp.status_code == 503

    def test_transaction_listing(self, client, viewer_headers, monkeypatch):
        monkeypatch.setattr(transactions_service, "_view_query", lambda: _BrokenQuery())
        resp = client.get("/api/transactions", headers=viewer_headers)
        assert resp.status_code == 503

    def test_transaction_by_id(self, client, viewer_headers, monkeypatch):
        monkeypatch.setattr(transactions_service, "_view_query", lambda: _BrokenQuery())
        resp = client.get("/api/transactions/1", headers=viewer_headers)
        assert resp.status_code == 503

    def test_profile_listing(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr(profiles_service, "list_profiles", translate_store_errors(_locked))
        resp = client.get("/api/profiles", headers=admin_headers)
        assert resp.status_code == 503

    def test_dashboard(self, client, viewer_headers, monkeypatch):
        monkeypatch.setattr(analytics_service, "_month_keys", _locked)
        resp = client.get("/api/analytics/dashboard", headers=viewer_headers)
        assert resp.status_code == 503

    def test_session_lookup(self, client, viewer_headers, monkeypatch):
        monkeypatch.setattr(session_service, "hash_token", _locked)
        resp = client.get("/api/auth/me", headers=viewer_headers)
        assert resp.status_code == 503
