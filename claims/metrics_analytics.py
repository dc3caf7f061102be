from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Sequence

import pandas as pd

from claims.charts import bar_chart, pie_chart, trend_chart
from claims.records import PatientRecord, records_to_frame, resolve_field

Aggregation = Literal["sum", "avg", "count", "max", "min"]
AGGREGATIONS = ("sum", "avg", "count", "max", "min")
UNKNOWN_GROUP = "Unknown"
PIE_LIMIT = 8


def require_field(name: str) -> str:
    col = resolve_field(name)
    if col is None:
        raise ValueError(f"Unknown field: {name}")
    return col


def _group_key(value: object) -> str:
    if value is None:
        return UNKNOWN_GROUP
    if isinstance(value, float):
        if math.isnan(value):
            return UNKNOWN_GROUP
        if value.is_integer():
            return str(int(value))
    s = str(value)
    return s if s else UNKNOWN_GROUP


def group_and_aggregate(
    records: Sequence[PatientRecord],
    x_field: str,
    y_fields: Sequence[str],
    aggregation: Aggregation = "sum",
) -> List[Dict[str, Any]]:
    """Bucket records by ``x_field`` and aggregate each of ``y_fields`` per bucket.

    Output rows look like ``{"name": <group>, <y_field>: <value>, ...}`` keyed by the
    names exactly as passed in, sorted by the first y field descending (ties keep
    first-seen order). The full series is returned; truncation for rendering is the
    caller's job (see ``top_n_series``).
    """
    if aggregation not in AGGREGATIONS:
        raise ValueError(f"Unknown aggregation: {aggregation}")
    x_col = require_field(x_field)
    y_cols = [require_field(f) for f in y_fields]
    if not records or not y_cols:
        return []

    df = records_to_frame(records)
    work = pd.DataFrame({"name": [_group_key(v) for v in df[x_col].tolist()]})
    value_cols = [f"y{i}" for i in range(len(y_cols))]
    for vc, col in zip(value_cols, y_cols):
        work[vc] = pd.to_numeric(df[col], errors="coerce").fillna(0.0).astype(float)

    grouped = work.groupby("name", sort=False)
    sizes = grouped.size()
    if aggregation == "count":
        agg = sizes.to_frame(value_cols[0])
        for vc in value_cols[1:]:
            agg[vc] = sizes
    elif aggregation == "avg":
        agg = grouped[value_cols].sum().div(sizes, axis=0)
    else:
        agg = getattr(grouped[value_cols], aggregation)()

    agg = agg.reset_index().sort_values(value_cols[0], ascending=False, kind="mergesort")
    out: List[Dict[str, Any]] = []
    for row in agg.itertuples(index=False):
        item: Dict[str, Any] = {"name": str(row.name)}
        for label, vc in zip(y_fields, value_cols):
            value = getattr(row, vc)
            item[label] = int(value) if aggregation == "count" else float(value)
        out.append(item)
    return out


def top_n_series(series: Sequence[Dict[str, Any]], limit: int = PIE_LIMIT) -> List[Dict[str, Any]]:
    return list(series[: max(0, int(limit))])


def monthly_trend(records: Sequence[PatientRecord], *, now: Optional[datetime] = None, months: int = 6) -> List[Dict[str, Any]]:
    """Fixed window of ``months`` points ending at the current month; empty months are 0."""
    now = now or datetime.now()
    periods = pd.period_range(end=pd.Period(now, freq="M"), periods=months, freq="M")
    buckets: Dict[str, Dict[str, float]] = {str(p): {"revenue": 0.0, "claims": 0} for p in periods}
    for r in records:
        key = (r.dos or r.timestamp or "")[:7]
        if key in buckets:
            buckets[key]["revenue"] += r.paid_amount
            buckets[key]["claims"] += 1
    return [
        {
            "period": str(p),
            "month": p.strftime("%b %Y"),
            "revenue": float(buckets[str(p)]["revenue"]),
            "claims": int(buckets[str(p)]["claims"]),
        }
        for p in periods
    ]


def _name_value(series: List[Dict[str, Any]], key: str) -> List[Dict[str, Any]]:
    return [{"name": s["name"], "value": s[key]} for s in series]


def build_analytics(records: Sequence[PatientRecord], *, now: Optional[datetime] = None, pie_limit: int = PIE_LIMIT) -> Dict[str, Any]:
    with_interaction = [r for r in records if r.type_of_interaction]
    series = {
        "revenue_by_office": _name_value(group_and_aggregate(records, "offices", ["paid_amount"], "sum"), "paid_amount"),
        "claims_by_status": _name_value(group_and_aggregate(records, "claim_status", ["paid_amount"], "count"), "paid_amount"),
        "revenue_by_insurer": _name_value(group_and_aggregate(records, "insurance_carrier", ["paid_amount"], "sum"), "paid_amount"),
        "interaction_types": _name_value(group_and_aggregate(with_interaction, "type_of_interaction", ["paid_amount"], "count"), "paid_amount"),
        "avg_payment_by_status": _name_value(group_and_aggregate(records, "claim_status", ["paid_amount"], "avg"), "paid_amount"),
    }
    trends = monthly_trend(records, now=now)

    charts: Dict[str, Any] = {}
    if records:
        charts = {
            "revenue_by_office": bar_chart(series["revenue_by_office"], "value", title="Revenue", currency=True),
            "claims_by_status": pie_chart(top_n_series(series["claims_by_status"], pie_limit), "value"),
            "revenue_by_insurer": bar_chart(series["revenue_by_insurer"], "value", title="Revenue", currency=True),
            "interaction_types": pie_chart(top_n_series(series["interaction_types"], pie_limit), "value"),
            "avg_payment_by_status": bar_chart(series["avg_payment_by_status"], "value", title="Average Payment", currency=True),
            "monthly_trends": trend_chart(trends),
        }
    return {**series, "monthly_trends": trends, "charts": charts}
