from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field, fields
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from claims.records import PatientRecord, records_to_frame

SEARCH_FIELDS = ("patient_name", "email_address", "insurance_carrier", "offices", "claim_status", "comments_reasons", "dos")

# FilterState attribute -> record column. Strict facets fail records that lack the value;
# auxiliary facets only apply to records that have one.
STRICT_FACETS: Dict[str, str] = {
    "offices": "offices",
    "insurance_carriers": "insurance_carrier",
    "claim_status": "claim_status",
    "statuses": "status",
    "interaction_types": "type_of_interaction",
}
AUXILIARY_FACETS: Dict[str, str] = {
    "how_proceeded": "how_we_proceeded",
    "escalated_to": "escalated_to",
    "missing_docs": "missing_docs_or_information",
}

# Accepted request spellings (camelCase from the browser, snake_case from Python callers).
_RAW_KEYS: Dict[str, Sequence[str]] = {
    "offices": ("offices",),
    "insurance_carriers": ("insurance_carriers", "insuranceCarriers"),
    "claim_status": ("claim_status", "claimStatus"),
    "statuses": ("statuses", "status"),
    "interaction_types": ("interaction_types", "interactionTypes"),
    "how_proceeded": ("how_proceeded", "howProceeded"),
    "escalated_to": ("escalated_to", "escalatedTo"),
    "missing_docs": ("missing_docs", "missingDocs"),
}


@dataclass(frozen=True)
class FilterState:
    date_start: Optional[str] = None
    date_end: Optional[str] = None
    offices: List[str] = field(default_factory=list)
    insurance_carriers: List[str] = field(default_factory=list)
    claim_status: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    interaction_types: List[str] = field(default_factory=list)
    search_query: str = ""
    how_proceeded: List[str] = field(default_factory=list)
    escalated_to: List[str] = field(default_factory=list)
    missing_docs: List[str] = field(default_factory=list)

    @property
    def has_date_range(self) -> bool:
        return bool(self.date_start and self.date_end)


def _as_str_list(values: Optional[Iterable[object]]) -> List[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [str(v) for v in values if v is not None and str(v) != ""]


def _first(raw: dict, keys: Sequence[str]) -> object:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return None


def _as_date_str(value: object) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, date):
        return value.isoformat()[:10]
    s = str(value).strip()
    return s[:10] if s else None


def normalize_filters(raw: Optional[dict]) -> FilterState:
    raw = raw or {}
    date_range = raw.get("date_range") or raw.get("dateRange") or {}
    start = _as_date_str(raw.get("date_start") or date_range.get("start"))
    end = _as_date_str(raw.get("date_end") or date_range.get("end"))

    search_query = str(_first(raw, ("search_query", "searchQuery")) or "").strip()
    facets = {name: _as_str_list(_first(raw, keys)) for name, keys in _RAW_KEYS.items()}
    return FilterState(date_start=start, date_end=end, search_query=search_query, **facets)


def default_filters(today: Optional[date] = None, days: int = 30) -> FilterState:
    today = today or date.today()
    return FilterState(date_start=(today - timedelta(days=days)).isoformat(), date_end=today.isoformat())


def filter_mask(df: pd.DataFrame, filters: FilterState) -> pd.Series:
    mask = pd.Series(True, index=df.index)
    if df.empty:
        return mask

    if filters.has_date_range:
        dos = df["dos"]
        mask &= dos.notna() & (dos.astype(str) >= filters.date_start) & (dos.astype(str) <= filters.date_end)

    for attr, col in STRICT_FACETS.items():
        selected = getattr(filters, attr)
        if selected:
            mask &= df[col].isin(set(selected))

    if filters.search_query:
        q = filters.search_query.lower()
        hit = pd.Series(False, index=df.index)
        for col in SEARCH_FIELDS:
            hit |= df[col].fillna("").astype(str).str.lower().str.contains(q, regex=False)
        mask &= hit

    for attr, col in AUXILIARY_FACETS.items():
        selected = getattr(filters, attr)
        if selected:
            present = df[col].notna()
            mask &= ~present | df[col].isin(set(selected))
    return mask


def apply_filters(records: Sequence[PatientRecord], filters: FilterState) -> List[PatientRecord]:
    """AND-combine every active criterion; input order is preserved."""
    if not records:
        return []
    mask = filter_mask(records_to_frame(records), filters)
    return [r for r, keep in zip(records, mask.tolist()) if keep]


def filter_options(records: Sequence[PatientRecord]) -> Dict[str, List[Dict[str, object]]]:
    """Distinct values (first-seen order) with record counts for each facet."""
    out: Dict[str, List[Dict[str, object]]] = {}
    for attr, col in {**STRICT_FACETS, **AUXILIARY_FACETS}.items():
        counts = Counter(getattr(r, col) for r in records if getattr(r, col))
        out[attr] = [{"value": v, "label": v, "count": n} for v, n in counts.items()]
    return out


def active_filter_count(filters: FilterState, baseline: Optional[FilterState] = None) -> int:
    baseline = baseline or FilterState()
    count = 0
    for f in fields(FilterState):
        value = getattr(filters, f.name)
        if isinstance(value, list):
            count += len(value)
    if filters.search_query:
        count += 1
    if (filters.date_start, filters.date_end) != (baseline.date_start, baseline.date_end) and filters.has_date_range:
        count += 1
    return count
