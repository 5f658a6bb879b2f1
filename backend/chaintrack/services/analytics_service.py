# Overview: Service-layer aggregation over supply-chain transactions and logistics readings.

"""
Aggregation Engine

The functions in the first half of this module are pure: they take
collections of rows (model instances, or mappings with the same keys) and
return plain data. Nothing is cached; every call recomputes from its input.

Policies:
- Null temperature / humidity readings are skipped.
- transport_duration values without a leading integer are skipped
  (never averaged in as NaN or zero).
- A reading that is present but not numeric raises ComputationError.
- Logistics rows whose parent transaction is not in the snapshot go to one
  explicit trailing bucket (date None, unresolved True).
- Empty input gives None for a mean, never a division artifact.

analytics_overview() and dashboard_summary() fetch the snapshots from the
database and run the pure functions over them.
"""
from __future__ import annotations

import math
import re
from collections import Counter, defaultdict
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any, Iterable

from flask import current_app

from ..extensions import db
from ..models import Location, LogisticsDetail, Product, SupplyChainTransaction
from ..validation import ValidationError
from .concurrency import translate_store_errors
from chaintrack.time_utils import date_range, parse_iso_datetime, period_key, to_utc_z, utc_date, utcnow


class ComputationError(Exception):
    """Raised when aggregation input holds a value that cannot be used as a number."""
    pass


GROUP_BY_CHOICES = ("day", "week", "month")
TIMEFRAME_DAYS = {"week": 7, "month": 30, "year": 365}
RECENT_TRANSACTIONS_LIMIT = 5
HISTORY_MONTHS = 6

_LEADING_INT = re.compile(r"^\s*\+?(\d+)")


def _field(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def _created_at(row: Any) -> datetime:
    value = _field(row, "created_at")
    if isinstance(value, str):
        try:
            value = parse_iso_datetime(value)
        except ValueError:
            raise ComputationError(f"Unparseable created_at: {value!r}")
    if not isinstance(value, datetime):
        raise ComputationError(f"Transaction {_field(row, 'id')} has no created_at")
    return value


def _numeric(value: Any, name: str) -> float | None:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ComputationError(f"{name} must be numeric, got {value!r}")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ComputationError(f"{name} must be numeric, got {value!r}")
    else:
        raise ComputationError(f"{name} must be numeric, got {type(value).__name__}")
    if math.isnan(number) or math.isinf(number):
        raise ComputationError(f"{name} must be a finite number")
    return number


def _mean(values: Iterable[float]) -> float | None:
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def _readings(rows: Iterable[Any], key: str) -> list[float]:
    numbers = (_numeric(_field(row, key), key) for row in rows)
    return [n for n in numbers if n is not None]


def _sorted_counts(counts: Counter) -> dict:
    # rows missing the field are counted under None, ordered last
    return dict(sorted(counts.items(), key=lambda kv: (kv[0] is None, kv[0] or "")))


def count_by_type(transactions: Iterable[Any]) -> dict[str | None, int]:
    return _sorted_counts(Counter(_field(t, "transaction_type") for t in transactions))


def count_by_status(transactions: Iterable[Any]) -> dict[str | None, int]:
    return _sorted_counts(Counter(_field(t, "status") for t in transactions))


def count_distinct_products(transactions: Iterable[Any]) -> int:
    return len({_field(t, "product_id") for t in transactions})


def trend(transactions: Iterable[Any], group_by: str = "day", *, fill_gaps: bool = False) -> list[dict]:
    """
    Transaction counts per period, ordered by period.

    group_by: day ("YYYY-MM-DD"), week ("YYYY-Www") or month ("YYYY-MM").
    fill_gaps (day only): include zero-count days between the first and last.
    """
    if group_by not in GROUP_BY_CHOICES:
        raise ValidationError("group_by must be day, week, or month")
    if fill_gaps and group_by != "day":
        raise ValidationError("fill_gaps is only supported for group_by=day")

    counts: Counter = Counter()
    days = []
    for t in transactions:
        created = _created_at(t)
        counts[period_key(created, group_by)] += 1
        if fill_gaps:
            days.append(utc_date(created))

    if fill_gaps and days:
        for day in date_range(min(days), max(days)):
            counts.setdefault(day.isoformat(), 0)

    return [{"date": key, "count": counts[key]} for key in sorted(counts)]


def trend_by_day(transactions: Iterable[Any], *, fill_gaps: bool = False) -> list[dict]:
    return trend(transactions, "day", fill_gaps=fill_gaps)


def environmental_trend_by_day(logistics_details: Iterable[Any], transactions: Iterable[Any]) -> list[dict]:
    """
    Mean temperature and humidity per creation date of the parent transaction.

    Details whose transaction is not in `transactions` are reported in one
    trailing bucket with date None and unresolved True.
    """
    transaction_dates = {
        _field(t, "id"): utc_date(_created_at(t)).isoformat()
        for t in transactions
    }

    groups: dict[str | None, list[Any]] = defaultdict(list)
    for detail in logistics_details:
        groups[transaction_dates.get(_field(detail, "transaction_id"))].append(detail)

    def bucket(date_key: str | None, items: list[Any]) -> dict:
        return {
            "date": date_key,
            "unresolved": date_key is None,
            "temperature": _mean(_readings(items, "temperature")),
            "humidity": _mean(_readings(items, "humidity")),
            "samples": len(items),
        }

    rows = [bucket(key, groups[key]) for key in sorted(k for k in groups if k is not None)]
    if None in groups:
        rows.append(bucket(None, groups[None]))
    return rows


def mean_temperature(logistics_details: Iterable[Any]) -> float | None:
    return _mean(_readings(logistics_details, "temperature"))


def mean_humidity(logistics_details: Iterable[Any]) -> float | None:
    return _mean(_readings(logistics_details, "humidity"))


def parse_duration_hours(value: Any) -> int | None:
    """Leading integer of a free-text duration ("2 hours" -> 2); None if absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    match = _LEADING_INT.match(str(value))
    return int(match.group(1)) if match else None


def transit_hours(logistics_details: Iterable[Any]) -> tuple[list[int], int]:
    """Parsed durations and the number of rows skipped as unparseable."""
    parsed, skipped = [], 0
    for detail in logistics_details:
        hours = parse_duration_hours(_field(detail, "transport_duration"))
        if hours is None:
            skipped += 1
        else:
            parsed.append(hours)
    return parsed, skipped


def mean_transit_hours(logistics_details: Iterable[Any]) -> float | None:
    parsed, _ = transit_hours(logistics_details)
    return _mean(parsed)


def _round(value: float | None, digits: int) -> float | None:
    return round(value, digits) if value is not None else None


def _timeframe_start(timeframe: str | None, now: datetime) -> datetime | None:
    if timeframe is None:
        return None
    if timeframe not in TIMEFRAME_DAYS:
        raise ValidationError("timeframe must be week, month, or year")
    return now - timedelta(days=TIMEFRAME_DAYS[timeframe])


def _load_snapshot(since: datetime | None) -> tuple[list[SupplyChainTransaction], list[LogisticsDetail]]:
    txn_query = db.session.query(SupplyChainTransaction).order_by(
        SupplyChainTransaction.created_at.desc(), SupplyChainTransaction.id.desc()
    )
    logistics_query = db.session.query(LogisticsDetail).order_by(LogisticsDetail.id.asc())
    if since is not None:
        txn_query = txn_query.filter(SupplyChainTransaction.created_at >= since)
        logistics_query = logistics_query.join(
            SupplyChainTransaction, LogisticsDetail.transaction_id == SupplyChainTransaction.id
        ).filter(SupplyChainTransaction.created_at >= since)
    return txn_query.all(), logistics_query.all()


@translate_store_errors
def analytics_overview(*, timeframe: str | None = None, now: datetime | None = None) -> dict:
    """
    Totals, means and trends over the current snapshot.

    timeframe: None (everything), "week", "month" or "year" (trailing window).
    """
    now = now or utcnow()
    since = _timeframe_start(timeframe, now)
    transactions, details = _load_snapshot(since)

    hours, skipped = transit_hours(details)
    if skipped:
        current_app.logger.warning(
            "Skipped %d logistics rows with unparseable transport_duration", skipped
        )

    return {
        "timeframe": timeframe,
        "since": to_utc_z(since),
        "total_transactions": len(transactions),
        "active_products": count_distinct_products(transactions),
        "logistics_records": len(details),
        "average_temperature": _round(mean_temperature(details), 1),
        "average_humidity": _round(mean_humidity(details), 1),
        "average_transit_hours": _round(_mean(hours), 0),
        "transit_durations_skipped": skipped,
        "by_type": count_by_type(transactions),
        "by_status": count_by_status(transactions),
        "daily_trend": trend_by_day(transactions),
        "environmental_trend": environmental_trend_by_day(details, transactions),
    }


@translate_store_errors
def transaction_trend(*, group_by: str = "day", start: str | None = None, end: str | None = None, fill_gaps: bool = False) -> dict:
    start_dt = parse_iso_datetime(start) if start else None
    end_dt = parse_iso_datetime(end) if end else None

    query = db.session.query(SupplyChainTransaction)
    if start_dt:
        query = query.filter(SupplyChainTransaction.created_at >= start_dt)
    if end_dt:
        query = query.filter(SupplyChainTransaction.created_at <= end_dt)

    return {
        "group_by": group_by,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "rows": trend(query.all(), group_by, fill_gaps=fill_gaps),
    }


def _month_keys(now: datetime, months: int) -> list[str]:
    year, month = now.year, now.month
    keys = []
    for _ in range(months):
        keys.append(f"{year}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


@translate_store_errors
def dashboard_summary(*, now: datetime | None = None) -> dict:
    """Headline counts, latest transactions and six months of history."""
    from .transactions_service import list_transactions

    now = now or utcnow()

    total_products = db.session.query(Product).count()
    total_locations = db.session.query(Location).count()
    pending = db.session.query(SupplyChainTransaction).filter(
        SupplyChainTransaction.status == "pending"
    ).count()
    delivered = db.session.query(SupplyChainTransaction).filter(
        SupplyChainTransaction.transaction_type == "delivery",
        SupplyChainTransaction.status == "completed",
    ).count()

    month_keys = _month_keys(now, HISTORY_MONTHS)
    first_month = datetime(int(month_keys[0][:4]), int(month_keys[0][5:]), 1)
    recent_rows = db.session.query(SupplyChainTransaction).filter(
        SupplyChainTransaction.created_at >= first_month
    ).all()
    monthly = {row["date"]: row["count"] for row in trend(recent_rows, "month")}

    return {
        "stats": {
            "total_products": total_products,
            "active_locations": total_locations,
            "pending_transactions": pending,
            "completed_deliveries": delivered,
        },
        "recent_transactions": [
            view.to_dict() for view in list_transactions(limit=RECENT_TRANSACTIONS_LIMIT)
        ],
        "transaction_history": [
            {"month": key, "transactions": monthly.get(key, 0)} for key in month_keys
        ],
    }
