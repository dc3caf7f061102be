"""Tests for claims.metrics_overview and claims.metrics_quality."""

from datetime import datetime

import pytest

from claims.filters import FilterState
from claims.metrics_overview import (
    DashboardMetrics,
    completion_rate,
    compute_metrics,
    compute_overview,
    parse_local_datetime,
    top_offices,
)
from claims.metrics_quality import compute_data_quality

NOW = datetime(2024, 3, 1, 12, 0)


class TestComputeMetrics:
    def test_totals(self, records):
        m = compute_metrics(records, now=NOW)
        assert m.total_revenue == pytest.approx(745.5)
        assert m.active_offices == 3
        assert m.average_claim == pytest.approx(745.5 / 5)

    def test_completed_only_counts_completed_statuses_case_insensitively(self, records):
        assert compute_metrics(records, claims_policy="completed_only", now=NOW).claims_processed == 3

    def test_all_policy_counts_every_record(self, records):
        m = compute_metrics(records, claims_policy="all", now=NOW)
        assert m.claims_processed == 5
        assert m.average_claim * m.claims_processed == pytest.approx(m.total_revenue)

    def test_average_is_over_all_records_regardless_of_policy(self, records):
        a = compute_metrics(records, claims_policy="all", now=NOW)
        b = compute_metrics(records, claims_policy="completed_only", now=NOW)
        assert a.average_claim == b.average_claim

    def test_unknown_policy(self, records):
        with pytest.raises(ValueError):
            compute_metrics(records, claims_policy="paid_only", now=NOW)

    def test_empty_input_is_all_zero(self):
        assert compute_metrics([], now=NOW) == DashboardMetrics()

    def test_blank_office_is_not_active(self, make_record):
        rows = [make_record(offices="Downtown Office"), make_record(offices="  "), make_record(offices="Downtown Office")]
        assert compute_metrics(rows, now=NOW).active_offices == 1


class TestTimeWindows:
    def test_today_and_month_use_timestamp(self, make_record):
        rows = [
            make_record(timestamp="2024-03-01T08:00:00", dos="2023-01-01"),
            make_record(timestamp="2024-03-01T23:59:00"),
            make_record(timestamp="2024-02-29T23:59:00", dos="2024-03-01"),
            make_record(timestamp="2024-03-20T10:00:00"),
            make_record(timestamp="not a date"),
        ]
        m = compute_metrics(rows, now=NOW)
        assert m.todays_claims == 2
        assert m.monthly_claims == 3

    def test_week_uses_date_of_service(self, make_record):
        rows = [
            make_record(dos="2024-03-01"),
            make_record(dos="2024-02-23"),
            make_record(dos="2024-02-22"),
            make_record(dos="2024-03-02"),
            make_record(dos=None),
        ]
        assert compute_metrics(rows, now=NOW).weekly_claims == 2

    def test_parse_local_datetime(self):
        assert parse_local_datetime("2024-03-01T09:30:00") == datetime(2024, 3, 1, 9, 30)
        assert parse_local_datetime("garbage") is None
        assert parse_local_datetime(None) is None
        assert parse_local_datetime("2024-03-01T09:30:00Z").tzinfo is None


class TestOverview:
    def test_completion_rate(self, records):
        assert completion_rate(records) == pytest.approx(60.0)
        assert completion_rate([]) == 0.0

    def test_top_offices_sorted_by_revenue(self, records):
        top = top_offices(records)
        assert [o["office"] for o in top] == ["Uptown Office", "Downtown Office", "Westside Office"]
        assert top[0] == {"office": "Uptown Office", "revenue": 520.0, "claims": 2, "average_claim": 260.0}

    def test_top_offices_limit(self, records):
        assert len(top_offices(records, limit=1)) == 1
        assert top_offices([]) == []

    def test_compute_overview_shape(self, records):
        f = FilterState(offices=["Downtown Office"])
        out = compute_overview(f, records, claims_policy="all", now=NOW, degraded=True)
        assert out["filters"]["offices"] == ["Downtown Office"]
        assert out["claims_policy"] == "all"
        assert out["record_count"] == 5
        assert out["degraded"] is True
        assert out["kpis"]["claims_processed"] == 5
        assert out["kpis"]["total_revenue"] == pytest.approx(745.5)
        assert len(out["top_offices"]) == 3


class TestDataQuality:
    def test_complete_unique_records(self, records):
        q = compute_data_quality(records, now=NOW)
        assert q["total_records"] == 5
        assert q["completeness_score"] == 100.0
        assert q["duplicate_count"] == 0
        assert q["last_updated"] == NOW.isoformat()

    def test_duplicates_keyed_on_name_and_service_date(self, make_record):
        rows = [
            make_record(patient_name="Ann Lee", dos="2024-03-01"),
            make_record(patient_name="Ann Lee", dos="2024-03-01", offices="Uptown Office"),
            make_record(patient_name="Ann Lee", dos="2024-03-02"),
            make_record(patient_name="Ann Lee", dos="2024-03-01"),
        ]
        assert compute_data_quality(rows, now=NOW)["duplicate_count"] == 2

    def test_completeness_counts_blank_fields(self, make_record):
        rows = [make_record(), make_record(insurance_carrier="", claim_status="")]
        assert compute_data_quality(rows, now=NOW)["completeness_score"] == 75.0

    def test_empty(self):
        q = compute_data_quality([], now=NOW)
        assert q["total_records"] == 0
        assert q["completeness_score"] == 0.0
