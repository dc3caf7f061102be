from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Literal, Optional, Sequence

import pandas as pd

from claims.filters import FilterState
from claims.records import PatientRecord, records_to_frame

ClaimsPolicy = Literal["all", "completed_only"]
CLAIMS_POLICIES = ("all", "completed_only")
COMPLETED_STATUSES = {"complete", "completed"}
COMPLETED_CLAIM_STATUSES = {"paid", "completed"}


@dataclass(frozen=True)
class DashboardMetrics:
    total_revenue: float = 0.0
    claims_processed: int = 0
    average_claim: float = 0.0
    active_offices: int = 0
    todays_claims: int = 0
    weekly_claims: int = 0
    monthly_claims: int = 0


def parse_local_datetime(value: object) -> Optional[datetime]:
    """Parse a loose timestamp; aware values are shifted to local time and made naive."""
    if value is None:
        return None
    try:
        ts = pd.to_datetime(value, errors="coerce")
    except Exception:
        return None
    if ts is None or pd.isna(ts):
        return None
    dt = ts.to_pydatetime()
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt


def compute_metrics(
    records: Sequence[PatientRecord],
    *,
    claims_policy: ClaimsPolicy = "completed_only",
    now: Optional[datetime] = None,
) -> DashboardMetrics:
    if claims_policy not in CLAIMS_POLICIES:
        raise ValueError(f"Unknown claims policy: {claims_policy}")
    if not records:
        return DashboardMetrics()

    now = now or datetime.now()
    today = now.date()
    df = records_to_frame(records)

    total_revenue = float(df["paid_amount"].sum())
    if claims_policy == "all":
        claims_processed = int(len(df))
    else:
        claims_processed = int(df["status"].fillna("").str.strip().str.lower().isin(COMPLETED_STATUSES).sum())
    average_claim = total_revenue / len(df)

    offices = df["offices"].dropna().astype(str).str.strip()
    active_offices = int(offices[offices != ""].nunique())

    stamps = [parse_local_datetime(r.timestamp) for r in records]
    todays_claims = sum(1 for ts in stamps if ts is not None and ts.date() == today)
    monthly_claims = sum(1 for ts in stamps if ts is not None and (ts.year, ts.month) == (today.year, today.month))

    # Weekly uses date of service, while today/monthly use the ingest timestamp.
    week_start = today - timedelta(days=7)
    service_days = [parse_local_datetime(r.dos) for r in records]
    weekly_claims = sum(1 for d in service_days if d is not None and week_start <= d.date() <= today)

    return DashboardMetrics(
        total_revenue=total_revenue,
        claims_processed=claims_processed,
        average_claim=average_claim,
        active_offices=active_offices,
        todays_claims=todays_claims,
        weekly_claims=weekly_claims,
        monthly_claims=monthly_claims,
    )


def completion_rate(records: Sequence[PatientRecord]) -> float:
    if not records:
        return 0.0
    done = sum(1 for r in records if r.claim_status.strip().lower() in COMPLETED_CLAIM_STATUSES)
    return done / len(records) * 100


def top_offices(records: Sequence[PatientRecord], limit: int = 5) -> List[Dict[str, Any]]:
    if not records:
        return []
    df = records_to_frame(records)
    grouped = (
        df.groupby("offices", sort=False)["paid_amount"]
        .agg(["sum", "count"])
        .reset_index()
        .rename(columns={"offices": "office", "sum": "revenue", "count": "claims"})
        .sort_values("revenue", ascending=False, kind="mergesort")
        .head(max(1, int(limit)))
    )
    return [
        {
            "office": str(row.office),
            "revenue": float(row.revenue),
            "claims": int(row.claims),
            "average_claim": float(row.revenue) / int(row.claims),
        }
        for row in grouped.itertuples(index=False)
    ]


def compute_overview(
    filters: FilterState,
    records: Sequence[PatientRecord],
    *,
    claims_policy: ClaimsPolicy = "completed_only",
    now: Optional[datetime] = None,
    degraded: bool = False,
) -> Dict[str, Any]:
    metrics = compute_metrics(records, claims_policy=claims_policy, now=now)
    return {
        "filters": asdict(filters),
        "claims_policy": claims_policy,
        "record_count": len(records),
        "degraded": degraded,
        "kpis": asdict(metrics),
        "completion_rate": completion_rate(records),
        "top_offices": top_offices(records),
    }