"""Tests for claims.metrics_analytics and the chart specs it builds."""

from datetime import datetime

import pytest

from claims.metrics_analytics import (
    PIE_LIMIT,
    build_analytics,
    group_and_aggregate,
    monthly_trend,
    top_n_series,
)

NOW = datetime(2024, 3, 15, 9, 0)


def _mark_type(spec):
    mark = spec["mark"]
    return mark["type"] if isinstance(mark, dict) else mark


def _dataset(spec):
    datasets = spec["datasets"]
    assert len(datasets) == 1
    return next(iter(datasets.values()))


class TestGroupAndAggregate:
    def test_sum_sorted_descending_keyed_by_caller_names(self, make_record):
        rows = [
            make_record(offices="A", paid_amount=100.0),
            make_record(offices="B", paid_amount=200.0),
            make_record(offices="A", paid_amount=50.0),
        ]
        assert group_and_aggregate(rows, "offices", ["paidAmount"], "sum") == [
            {"name": "B", "paidAmount": 200.0},
            {"name": "A", "paidAmount": 150.0},
        ]

    @pytest.mark.parametrize("aggregation", ["sum", "avg", "count", "max", "min"])
    def test_matches_direct_computation(self, records, aggregation):
        out = {row["name"]: row["paid_amount"] for row in group_and_aggregate(records, "offices", ["paid_amount"], aggregation)}
        groups = {}
        for r in records:
            groups.setdefault(r.offices, []).append(r.paid_amount)
        direct = {
            "sum": lambda v: sum(v),
            "avg": lambda v: sum(v) / len(v),
            "count": len,
            "max": max,
            "min": min,
        }[aggregation]
        assert out.keys() == groups.keys()
        for name, values in groups.items():
            assert out[name] == pytest.approx(direct(values))

    def test_count_values_are_ints(self, records):
        out = group_and_aggregate(records, "insurance_carrier", ["paid_amount"], "count")
        assert out[0] == {"name": "Aetna", "paid_amount": 2}
        assert all(isinstance(row["paid_amount"], int) for row in out)

    def test_multiple_y_fields_sorted_by_first(self, make_record):
        rows = [
            make_record(offices="A", paid_amount=10.0, productivity_amount=500.0),
            make_record(offices="B", paid_amount=20.0, productivity_amount=5.0),
        ]
        out = group_and_aggregate(rows, "offices", ["paid_amount", "productivity_amount"], "sum")
        assert out == [
            {"name": "B", "paid_amount": 20.0, "productivity_amount": 5.0},
            {"name": "A", "paid_amount": 10.0, "productivity_amount": 500.0},
        ]

    def test_missing_group_value_becomes_unknown(self, records):
        out = group_and_aggregate(records, "dos", ["paid_amount"], "count")
        assert {"name": "Unknown", "paid_amount": 1} in out

    def test_ties_keep_first_seen_order(self, make_record):
        rows = [
            make_record(offices="Zeta", paid_amount=100.0),
            make_record(offices="Alpha", paid_amount=100.0),
            make_record(offices="Mid", paid_amount=100.0),
        ]
        assert [row["name"] for row in group_and_aggregate(rows, "offices", ["paid_amount"])] == ["Zeta", "Alpha", "Mid"]

    def test_full_series_is_returned(self, make_record):
        rows = [make_record(claim_status=f"S{i}") for i in range(12)]
        assert len(group_and_aggregate(rows, "claim_status", ["paid_amount"], "count")) == 12

    def test_empty_input(self):
        assert group_and_aggregate([], "offices", ["paid_amount"]) == []

    def test_unknown_field(self, records):
        with pytest.raises(ValueError, match="Unknown field"):
            group_and_aggregate(records, "favourite_colour", ["paid_amount"])
        with pytest.raises(ValueError, match="Unknown field"):
            group_and_aggregate(records, "offices", ["nope"])

    def test_unknown_aggregation(self, records):
        with pytest.raises(ValueError, match="Unknown aggregation"):
            group_and_aggregate(records, "offices", ["paid_amount"], "median")

    def test_top_n_series(self):
        series = [{"name": str(i), "value": i} for i in range(10)]
        assert top_n_series(series, 3) == series[:3]
        assert top_n_series(series) == series[:PIE_LIMIT]
        assert top_n_series(series, 0) == []


class TestMonthlyTrend:
    def test_six_month_window_ending_now(self, records):
        points = monthly_trend(records, now=NOW)
        assert [p["month"] for p in points] == ["Oct 2023", "Nov 2023", "Dec 2023", "Jan 2024", "Feb 2024", "Mar 2024"]
        assert [p["period"] for p in points][-1] == "2024-03"

    def test_buckets_by_service_date_then_timestamp(self, records):
        points = {p["period"]: p for p in monthly_trend(records, now=NOW)}
        assert points["2024-03"]["revenue"] == pytest.approx(745.5)
        assert points["2024-03"]["claims"] == 4
        assert points["2024-02"]["claims"] == 1
        assert points["2023-10"] == {"period": "2023-10", "month": "Oct 2023", "revenue": 0.0, "claims": 0}

    def test_out_of_window_records_ignored(self, make_record):
        points = monthly_trend([make_record(dos="2022-01-05")], now=NOW)
        assert sum(p["claims"] for p in points) == 0
        assert len(points) == 6


class TestBuildAnalytics:
    def test_series(self, records):
        out = build_analytics(records, now=NOW)
        assert out["revenue_by_office"] == [
            {"name": "Uptown Office", "value": 520.0},
            {"name": "Downtown Office", "value": 150.0},
            {"name": "Westside Office", "value": 75.5},
        ]
        assert out["interaction_types"] == [
            {"name": "Cleaning", "value": 2},
            {"name": "Root Canal", "value": 1},
            {"name": "Checkup", "value": 1},
        ]
        assert out["avg_payment_by_status"][0] == {"name": "Pending", "value": 300.0}
        assert len(out["monthly_trends"]) == 6

    def test_charts_are_vega_lite_specs(self, records):
        charts = build_analytics(records, now=NOW)["charts"]
        assert set(charts) == {
            "revenue_by_office",
            "claims_by_status",
            "revenue_by_insurer",
            "interaction_types",
            "avg_payment_by_status",
            "monthly_trends",
        }
        assert _mark_type(charts["revenue_by_office"]) == "bar"
        assert _mark_type(charts["claims_by_status"]) == "arc"
        assert "vega-lite" in charts["monthly_trends"]["$schema"]

    def test_pie_charts_truncated_but_series_kept_whole(self, make_record):
        rows = [make_record(claim_status=f"S{i}", paid_amount=float(i)) for i in range(11)]
        out = build_analytics(rows, now=NOW)
        assert len(out["claims_by_status"]) == 11
        assert len(_dataset(out["charts"]["claims_by_status"])) == PIE_LIMIT

    def test_empty_input(self):
        out = build_analytics([], now=NOW)
        assert out["revenue_by_office"] == []
        assert out["charts"] == {}
        assert [p["claims"] for p in out["monthly_trends"]] == [0] * 6
