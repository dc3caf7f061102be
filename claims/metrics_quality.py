from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from claims.records import PatientRecord

COMPLETENESS_FIELDS = ("patient_name", "offices", "insurance_carrier", "claim_status")


def compute_data_quality(records: Sequence[PatientRecord], *, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    total = len(records)

    filled = sum(sum(1 for f in COMPLETENESS_FIELDS if getattr(r, f)) / len(COMPLETENESS_FIELDS) for r in records)
    completeness = (filled / total) * 100 if total else 0.0

    # Keyed on name + date of service; same-named patients seen the same day count as repeats.
    seen = set()
    duplicates = 0
    for r in records:
        key = (r.patient_name, r.dos)
        if key in seen:
            duplicates += 1
        else:
            seen.add(key)

    return {
        "total_records": total,
        "completeness_score": round(completeness, 1),
        "duplicate_count": duplicates,
        "last_updated": now.isoformat(),
    }
