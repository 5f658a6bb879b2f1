# Overview: Service-layer operations for saved reports; scheduling and CSV export.

from __future__ import annotations

import csv
import io
from datetime import datetime, timedelta

from ..extensions import db
from ..models import LogisticsDetail, Product, Profile, Report
from .analytics_service import analytics_overview
from .concurrency import commit_or_raise, translate_store_errors
from .repository import EntityRepository
from .session_service import require_actor
from .transactions_service import list_transactions
from chaintrack.time_utils import to_utc_z, utcnow


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


REPORT_MUTABLE_FIELDS = {"name", "type", "frequency", "status", "extra_metadata"}

FREQUENCY_INTERVALS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
    "monthly": timedelta(days=30),
}
DEFAULT_INTERVAL = timedelta(days=1)  # custom schedules fall back to daily

reports = EntityRepository(Report, default_order=[Report.created_at.desc(), Report.id.desc()])


def next_run_interval(frequency: str) -> timedelta:
    return FREQUENCY_INTERVALS.get(frequency, DEFAULT_INTERVAL)


def list_reports() -> list[Report]:
    return reports.list()


def get_report(report_id: int) -> Report | None:
    return reports.get(report_id)


def create_report(*, actor: Profile | None, patch: dict, now: datetime | None = None) -> Report:
    actor = require_actor(actor)
    now = now or utcnow()

    values = {k: v for k, v in patch.items() if k in REPORT_MUTABLE_FIELDS}
    values.setdefault("status", "active")
    values["created_by"] = actor.id
    values["last_run"] = now
    values["next_run"] = now + next_run_interval(values["frequency"])
    return reports.insert(values)


def update_report(*, report_id: int, patch: dict) -> Report | None:
    values = {k: v for k, v in patch.items() if k in REPORT_MUTABLE_FIELDS}
    return reports.update(report_id, values)


def delete_report(*, report_id: int) -> bool:
    return reports.delete(report_id)


def run_report(*, report_id: int, now: datetime | None = None) -> Report | None:
    """Record a run now and schedule the next one from the report's frequency."""
    report = reports.get(report_id)
    if report is None:
        return None

    now = now or utcnow()
    report.last_run = now
    report.next_run = now + next_run_interval(report.frequency)
    report.status = "active"
    commit_or_raise()
    return report


def _supply_chain_rows() -> tuple[list[str], list[list]]:
    header = [
        "id", "created_at", "product", "sku", "transaction_type", "status",
        "from_location", "to_location", "previous_transaction_id", "blockchain_hash",
    ]
    rows = []
    for view in list_transactions():
        txn = view.transaction
        rows.append([
            txn.id, to_utc_z(txn.created_at), view.product_name, view.product_sku,
            txn.transaction_type, txn.status, view.from_location_name, view.to_location_name,
            txn.previous_transaction_id, txn.blockchain_hash,
        ])
    return header, rows


def _logistics_rows() -> tuple[list[str], list[list]]:
    header = [
        "id", "transaction_id", "temperature", "humidity", "transport_vehicle",
        "transport_duration", "storage_conditions",
    ]
    details = db.session.query(LogisticsDetail).order_by(LogisticsDetail.id.asc()).all()
    rows = [
        [d.id, d.transaction_id, d.temperature, d.humidity, d.transport_vehicle,
         d.transport_duration, d.storage_conditions]
        for d in details
    ]
    return header, rows


def _inventory_rows() -> tuple[list[str], list[list]]:
    header = ["id", "sku", "name", "category", "status", "head_transaction_id"]
    items = db.session.query(Product).order_by(Product.name.asc(), Product.id.asc()).all()
    rows = [[p.id, p.sku, p.name, p.category, p.status, p.head_transaction_id] for p in items]
    return header, rows


def _performance_rows() -> tuple[list[str], list[list]]:
    overview = analytics_overview()
    rows = [
        ["total_transactions", overview["total_transactions"]],
        ["active_products", overview["active_products"]],
        ["average_temperature", overview["average_temperature"]],
        ["average_humidity", overview["average_humidity"]],
        ["average_transit_hours", overview["average_transit_hours"]],
    ]
    rows += [[f"type:{name}", count] for name, count in overview["by_type"].items()]
    rows += [[f"status:{name}", count] for name, count in overview["by_status"].items()]
    return ["metric", "value"], rows


REPORT_DATASETS = {
    "supply_chain": _supply_chain_rows,
    "logistics": _logistics_rows,
    "inventory": _inventory_rows,
    "performance": _performance_rows,
}


@translate_store_errors
def export_report(*, report_id: int) -> tuple[Report, str] | None:
    """
    Render the report's dataset as CSV text.

    Returns (report, csv_text), or None if the report does not exist.
    Raises ReportError for a report type with no dataset.
    """
    report = reports.get(report_id)
    if report is None:
        return None

    builder = REPORT_DATASETS.get(report.type)
    if builder is None:
        raise ReportError(f"No dataset for report type {report.type!r}")

    header, rows = builder()
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(header)
    writer.writerows(["" if value is None else value for value in row] for row in rows)
    return report, buffer.getvalue()
