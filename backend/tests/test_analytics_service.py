"""
Aggregation tests.

The pure functions are exercised with plain dicts and SimpleNamespace rows;
the composed overview and dashboard run against the test database.
"""

from datetime import datetime
from types import SimpleNamespace

import pytest

from chaintrack.models import LogisticsDetail
from chaintrack.services import analytics_service as analytics
from chaintrack.services.analytics_service import ComputationError
from chaintrack.services.lineage_service import append_transaction
from chaintrack.validation import ValidationError


def txn(id, created_at, transaction_type="transport", status="pending", product_id=1):
    return {
        "id": id,
        "created_at": created_at,
        "transaction_type": transaction_type,
        "status": status,
        "product_id": product_id,
    }


def detail(transaction_id, temperature=None, humidity=None, transport_duration=None):
    return SimpleNamespace(
        transaction_id=transaction_id,
        temperature=temperature,
        humidity=humidity,
        transport_duration=transport_duration,
    )


class TestCounts:

    def test_count_by_type_sums_to_total(self):
        rows = [
            txn(1, datetime(2024, 1, 1), "production"),
            txn(2, datetime(2024, 1, 2), "transport"),
            txn(3, datetime(2024, 1, 2), "transport"),
            txn(4, datetime(2024, 1, 3), "delivery"),
        ]
        counts = analytics.count_by_type(rows)
        assert counts == {"delivery": 1, "production": 1, "transport": 2}
        assert sum(counts.values()) == len(rows)

    def test_only_observed_types(self):
        counts = analytics.count_by_type([txn(1, datetime(2024, 1, 1), "storage")])
        assert list(counts) == ["storage"]

    def test_count_by_status(self):
        rows = [
            txn(1, datetime(2024, 1, 1), status="completed"),
            txn(2, datetime(2024, 1, 1), status="pending"),
            txn(3, datetime(2024, 1, 1), status="completed"),
        ]
        assert analytics.count_by_status(rows) == {"completed": 2, "pending": 1}

    def test_missing_values_counted_last(self):
        rows = [
            {"transaction_type": "transport", "status": None},
            {"transaction_type": None, "status": "pending"},
            {"transaction_type": "delivery", "status": "pending"},
        ]
        by_type = analytics.count_by_type(rows)
        assert by_type == {"delivery": 1, "transport": 1, None: 1}
        assert list(by_type) == ["delivery", "transport", None]
        assert list(analytics.count_by_status(rows)) == ["pending", None]

    def test_count_distinct_products(self):
        rows = [
            txn(1, datetime(2024, 1, 1), product_id=7),
            txn(2, datetime(2024, 1, 1), product_id=7),
            txn(3, datetime(2024, 1, 1), product_id=9),
        ]
        assert analytics.count_distinct_products(rows) == 2

    def test_empty_input(self):
        assert analytics.count_by_type([]) == {}
        assert analytics.count_distinct_products([]) == 0


class TestMeans:

    def test_empty_mean_is_none(self):
        assert analytics.mean_temperature([]) is None
        assert analytics.mean_humidity([]) is None
        assert analytics.mean_transit_hours([]) is None

    def test_null_readings_skipped(self):
        rows = [detail(1, temperature=10.0), detail(2, temperature=None), detail(3, temperature=20.0)]
        assert analytics.mean_temperature(rows) == pytest.approx(15.0)

    def test_all_null_is_none(self):
        assert analytics.mean_temperature([detail(1), detail(2)]) is None

    def test_numeric_strings_accepted(self):
        assert analytics.mean_humidity([detail(1, humidity="40"), detail(2, humidity=50)]) == pytest.approx(45.0)

    def test_non_numeric_reading_raises(self):
        with pytest.raises(ComputationError):
            analytics.mean_temperature([detail(1, temperature="warm")])

    def test_transit_hours_skip_policy(self):
        rows = [
            detail(1, transport_duration="2 hours"),
            detail(2, transport_duration="5 hours"),
            detail(3, transport_duration="not a number"),
        ]
        assert analytics.mean_transit_hours(rows) == pytest.approx(3.5)
        parsed, skipped = analytics.transit_hours(rows)
        assert parsed == [2, 5]
        assert skipped == 1

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("2 hours", 2),
            ("  12h", 12),
            ("48", 48),
            (6, 6),
            ("", None),
            (None, None),
            ("about 3 hours", None),
        ],
    )
    def test_parse_duration_hours(self, value, expected):
        assert analytics.parse_duration_hours(value) == expected


class TestTrends:

    def test_trend_by_day_sparse_and_ordered(self):
        rows = [
            txn(1, datetime(2024, 1, 3, 8)),
            txn(2, datetime(2024, 1, 1, 9)),
            txn(3, datetime(2024, 1, 1, 23, 59)),
        ]
        assert analytics.trend_by_day(rows) == [
            {"date": "2024-01-01", "count": 2},
            {"date": "2024-01-03", "count": 1},
        ]

    def test_fill_gaps(self):
        rows = [txn(1, datetime(2024, 1, 1)), txn(2, datetime(2024, 1, 3))]
        assert analytics.trend_by_day(rows, fill_gaps=True) == [
            {"date": "2024-01-01", "count": 1},
            {"date": "2024-01-02", "count": 0},
            {"date": "2024-01-03", "count": 1},
        ]

    def test_trend_of_own_output_is_stable(self):
        rows = [txn(i, datetime(2024, 1, 1 + i % 5, i % 24)) for i in range(30)]
        daily = analytics.trend_by_day(rows)

        expanded = [
            txn(n, datetime.fromisoformat(row["date"]))
            for row in daily
            for n in range(row["count"])
        ]
        assert len(expanded) == len(rows)
        assert analytics.trend_by_day(expanded) == daily

    def test_daily_regroups_into_monthly(self):
        rows = [txn(i, datetime(2024, 1 + i % 3, 1 + i % 28)) for i in range(40)]
        daily = analytics.trend_by_day(rows)
        regrouped = {}
        for row in daily:
            regrouped[row["date"][:7]] = regrouped.get(row["date"][:7], 0) + row["count"]
        monthly = {row["date"]: row["count"] for row in analytics.trend(rows, "month")}
        assert regrouped == monthly

    def test_week_keys(self):
        rows = [txn(1, datetime(2024, 1, 1)), txn(2, datetime(2024, 1, 7)), txn(3, datetime(2024, 1, 8))]
        assert analytics.trend(rows, "week") == [
            {"date": "2024-W01", "count": 2},
            {"date": "2024-W02", "count": 1},
        ]

    def test_iso_string_timestamps(self):
        rows = [txn(1, "2024-01-01T10:00:00Z"), txn(2, "2024-01-01T11:00:00+00:00")]
        assert analytics.trend_by_day(rows) == [{"date": "2024-01-01", "count": 2}]

    def test_bad_group_by(self):
        with pytest.raises(ValidationError):
            analytics.trend([], "hour")

    def test_fill_gaps_day_only(self):
        with pytest.raises(ValidationError):
            analytics.trend([], "month", fill_gaps=True)


class TestEnvironmentalTrend:

    def test_single_day_bucket(self):
        transactions = [txn(1, datetime(2024, 1, 1, 8)), txn(2, datetime(2024, 1, 1, 17))]
        details = [
            detail(1, temperature=20, humidity=40),
            detail(2, temperature=24, humidity=50),
        ]

        rows = analytics.environmental_trend_by_day(details, transactions)

        assert len(rows) == 1
        assert rows[0]["date"] == "2024-01-01"
        assert rows[0]["temperature"] == pytest.approx(22.0)
        assert rows[0]["humidity"] == pytest.approx(45.0)
        assert rows[0]["samples"] == 2
        assert rows[0]["unresolved"] is False

    def test_unresolved_bucket_trails(self):
        transactions = [txn(1, datetime(2024, 1, 2))]
        details = [detail(1, temperature=5.0), detail(99, temperature=30.0)]

        rows = analytics.environmental_trend_by_day(details, transactions)

        assert [r["date"] for r in rows] == ["2024-01-02", None]
        assert rows[-1]["unresolved"] is True
        assert rows[-1]["temperature"] == pytest.approx(30.0)

    def test_bucket_without_readings(self):
        rows = analytics.environmental_trend_by_day([detail(1)], [txn(1, datetime(2024, 1, 1))])
        assert rows[0]["temperature"] is None
        assert rows[0]["humidity"] is None


class TestOverview:

    def _seed(self, db_session, operator, product):
        production = append_transaction(
            actor=operator,
            patch={"product_id": product.id, "transaction_type": "production", "status": "completed"},
        )
        transport = append_transaction(
            actor=operator,
            patch={"product_id": product.id, "transaction_type": "transport"},
        )
        db_session.add_all([
            LogisticsDetail(transaction_id=production.id, temperature=20.0, humidity=40.0, transport_duration="2 hours"),
            LogisticsDetail(transaction_id=transport.id, temperature=24.0, humidity=50.0, transport_duration="5 hours"),
            LogisticsDetail(transaction_id=transport.id, transport_duration="unknown"),
        ])
        db_session.commit()

    def test_overview_totals(self, db_session, operator, product):
        self._seed(db_session, operator, product)

        overview = analytics.analytics_overview()

        assert overview["total_transactions"] == 2
        assert overview["active_products"] == 1
        assert overview["logistics_records"] == 3
        assert overview["average_temperature"] == 22.0
        assert overview["average_humidity"] == 45.0
        assert overview["average_transit_hours"] == 4.0
        assert overview["transit_durations_skipped"] == 1
        assert overview["by_type"] == {"production": 1, "transport": 1}
        assert overview["by_status"] == {"completed": 1, "pending": 1}
        assert sum(row["count"] for row in overview["daily_trend"]) == 2

    def test_overview_empty_store(self, db_session):
        overview = analytics.analytics_overview(timeframe="week")
        assert overview["total_transactions"] == 0
        assert overview["average_temperature"] is None
        assert overview["daily_trend"] == []
        assert overview["since"] is not None

    def test_overview_timeframe_excludes_old_rows(self, db_session, operator, product):
        self._seed(db_session, operator, product)
        overview = analytics.analytics_overview(timeframe="week", now=datetime(2000, 1, 1))
        assert overview["total_transactions"] == 2  # all rows are newer than 1999-12-25

        overview = analytics.analytics_overview(timeframe="week", now=datetime(2100, 1, 1))
        assert overview["total_transactions"] == 0
        assert overview["logistics_records"] == 0

    def test_bad_timeframe(self, db_session):
        with pytest.raises(ValidationError):
            analytics.analytics_overview(timeframe="decade")

    def test_dashboard_summary(self, db_session, operator, product):
        self._seed(db_session, operator, product)

        summary = analytics.dashboard_summary()

        assert summary["stats"]["total_products"] == 1
        assert summary["stats"]["pending_transactions"] == 1
        assert summary["stats"]["completed_deliveries"] == 0
        assert len(summary["recent_transactions"]) == 2
        assert summary["recent_transactions"][0]["product"]["name"] == product.name
        assert len(summary["transaction_history"]) == 6
        assert summary["transaction_history"][-1]["transactions"] == 2
