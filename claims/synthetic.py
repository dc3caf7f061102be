from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Dict, List, Optional

# Raw (pre-normalization) rows in the spreadsheet's own lowercase spelling.
SAMPLE_RECORDS: List[Dict[str, object]] = [
    {
        "timestamp": "2024-01-15T10:30:00",
        "insurancecarrier": "Delta Dental",
        "offices": "Downtown Office",
        "patientname": "John Smith",
        "paidamount": 150.00,
        "claimstatus": "Paid",
        "typeofinteraction": "Cleaning",
        "patientdob": "1985-03-15",
        "dos": "2024-01-10",
        "productivityamount": 200.00,
        "status": "Completed",
    },
    {
        "timestamp": "2024-01-15T11:15:00",
        "insurancecarrier": "Aetna",
        "offices": "Uptown Office",
        "patientname": "Sarah Johnson",
        "paidamount": 300.00,
        "claimstatus": "Pending",
        "typeofinteraction": "Root Canal",
        "patientdob": "1990-07-22",
        "dos": "2024-01-12",
        "productivityamount": 450.00,
        "status": "In Progress",
    },
    {
        "timestamp": "2024-01-15T12:00:00",
        "insurancecarrier": "Cigna",
        "offices": "Downtown Office",
        "patientname": "Mike Davis",
        "paidamount": 75.00,
        "claimstatus": "Denied",
        "typeofinteraction": "Checkup",
        "patientdob": "1978-11-08",
        "dos": "2024-01-08",
        "productivityamount": 100.00,
        "status": "Needs Review",
    },
]

OFFICES = ["Downtown Office", "Uptown Office", "Westside Office", "Lakeside Office"]
CARRIERS = ["Delta Dental", "Aetna", "Cigna", "MetLife", "Guardian", "United Concordia"]
CLAIM_STATUSES = ["Paid", "Pending", "Denied", "Processing", "Paid"]
STATUSES = ["Completed", "In Progress", "Needs Review", "Complete"]
INTERACTIONS = ["Cleaning", "Checkup", "Filling", "Root Canal", "Crown", "X-Ray", "Extraction"]
FIRST_NAMES = ["Alex", "Jordan", "Taylor", "Morgan", "Casey", "Riley", "Jamie", "Avery", "Quinn"]
LAST_NAMES = ["Garcia", "Nguyen", "Patel", "Brown", "Kim", "Lopez", "Walker", "Reed", "Hughes", "Ortiz", "Shaw"]


def synthetic_record(index: int, *, anchor: Optional[date] = None) -> Dict[str, object]:
    """Deterministic raw record for position ``index``; equal inputs give equal rows."""
    anchor = anchor or date.today()
    service_day = anchor - timedelta(days=index % 150)
    ingested = datetime.combine(service_day, datetime.min.time()) + timedelta(days=index % 3, hours=8 + index % 9, minutes=(index * 7) % 60)
    claim_status = CLAIM_STATUSES[index % len(CLAIM_STATUSES)]
    paid = 0.0 if claim_status == "Denied" else float(50 + (index * 37) % 450)
    first = FIRST_NAMES[index % len(FIRST_NAMES)]
    last = LAST_NAMES[index % len(LAST_NAMES)]
    return {
        "timestamp": ingested.isoformat(),
        "insurancecarrier": CARRIERS[index % len(CARRIERS)],
        "offices": OFFICES[index % len(OFFICES)],
        "patientname": f"{first} {last}",
        "paidamount": paid,
        "claimstatus": claim_status,
        "typeofinteraction": INTERACTIONS[index % len(INTERACTIONS)],
        "dos": service_day.isoformat(),
        "productivityamount": paid + 25.0 * (index % 4),
        "status": STATUSES[index % len(STATUSES)],
        "emailaddress": f"{first}.{last}{index}@example.com".lower(),
    }


def synthetic_records(count: int, *, start: int = 0, anchor: Optional[date] = None) -> List[Dict[str, object]]:
    return [synthetic_record(i, anchor=anchor) for i in range(start, start + max(0, count))]


def fallback_dataset(size: Optional[int] = None, *, anchor: Optional[date] = None) -> List[Dict[str, object]]:
    rows = [dict(r) for r in SAMPLE_RECORDS]
    if size is not None and size > len(rows):
        rows.extend(synthetic_records(size - len(rows), start=len(rows), anchor=anchor))
    return rows
