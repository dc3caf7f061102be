from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, dataclass, fields
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd

from claims.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatientRecord:
    timestamp: str
    patient_name: str
    offices: str
    insurance_carrier: str
    claim_status: str
    paid_amount: float = 0.0
    status: Optional[str] = None
    type_of_interaction: Optional[str] = None
    dos: Optional[str] = None
    productivity_amount: float = 0.0
    missing_docs_or_information: Optional[str] = None
    how_we_proceeded: Optional[str] = None
    escalated_to: Optional[str] = None
    comments_reasons: Optional[str] = None
    email_address: Optional[str] = None
    timestamp_by_interaction: Optional[str] = None
    patient_dob: Optional[str] = None
    eft_check_issued_date: Optional[str] = None

    def record_key(self) -> Tuple[str, str]:
        # Not unique: same-named patients with identical timestamps collide.
        return (self.patient_name, self.timestamp)


RECORD_COLUMNS: List[str] = [f.name for f in fields(PatientRecord)]
REQUIRED_FIELDS: Tuple[str, ...] = ("timestamp", "patient_name", "offices", "insurance_carrier", "claim_status")
NUMERIC_FIELDS: Tuple[str, ...] = ("paid_amount", "productivity_amount")

# Canonical field -> accepted spellings, in priority order. Keys are compared folded
# (lowercase, alphanumerics only), so "PaidAmount", "paid_amount" and "paidAmount" all match.
# A bare "Status" column fills both claim_status (as a fallback) and status.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "timestamp": ("timestamp",),
    "patient_name": ("patientname", "patient"),
    "offices": ("offices", "office"),
    "insurance_carrier": ("insurancecarrier", "carrier", "insurance"),
    "claim_status": ("claimstatus", "status"),
    "paid_amount": ("paidamount",),
    "status": ("status", "statuscolumn", "processingstatus"),
    "type_of_interaction": ("typeofinteraction", "type", "interactiontype"),
    "dos": ("dos", "dateofservice"),
    "productivity_amount": ("productivityamount",),
    "missing_docs_or_information": ("missingdocsorinformation", "missingdocs"),
    "how_we_proceeded": ("howweproceeded", "howproceeded"),
    "escalated_to": ("escalatedto",),
    "comments_reasons": ("commentsreasons", "comments"),
    "email_address": ("emailaddress", "email", "emails"),
    "timestamp_by_interaction": ("timestampbyinteraction",),
    "patient_dob": ("patientdob", "dob"),
    "eft_check_issued_date": ("eftcheckissueddate", "eftissueddate"),
}

# Reverse lookup for caller-facing names; a field's primary spelling always maps to itself.
_ALIAS_TO_FIELD: Dict[str, str] = {alias: name for name, aliases in FIELD_ALIASES.items() for alias in aliases}
_ALIAS_TO_FIELD.update({aliases[0]: name for name, aliases in FIELD_ALIASES.items()})

_MISSING_TOKENS = {"nan", "null", "undefined", "<na>"}
_NUMERIC_NOISE = re.compile(r"[\s$,]")
_ISO_DATE_PREFIX = re.compile(r"^(\d{4}-\d{2}-\d{2})(?:[T ].*)?$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def fold_key(key: object) -> str:
    return re.sub(r"[^a-z0-9]", "", str(key).lower())


def resolve_field(name: str) -> Optional[str]:
    """Map a caller-facing field name (any known spelling) to a PatientRecord attribute."""
    return _ALIAS_TO_FIELD.get(fold_key(name))


def clean_text(value: object) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    s = str(value).strip()
    if not s or s.lower() in _MISSING_TOKENS:
        return None
    return s


def coerce_amount(value: object) -> float:
    """Permissive numeric coercion: "$1,200.50" -> 1200.5, junk or missing -> 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        number = pd.to_numeric(_NUMERIC_NOISE.sub("", str(value)), errors="coerce")
    if pd.isna(number) or not math.isfinite(float(number)):
        return 0.0
    return float(number)


def normalize_dos(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    match = _ISO_DATE_PREFIX.match(value)
    return match.group(1) if match else value


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def is_valid_date(value: str) -> bool:
    try:
        return not pd.isna(pd.to_datetime(value, errors="coerce"))
    except Exception:
        return False


def _collect(raw: Mapping[Any, Any]) -> Dict[str, object]:
    folded: Dict[str, object] = {}
    for key, value in raw.items():
        k = fold_key(key)
        if k not in folded or clean_text(folded[k]) is None:
            folded[k] = value

    out: Dict[str, object] = {}
    for name, aliases in FIELD_ALIASES.items():
        out[name] = None
        for alias in aliases:
            value = folded.get(alias)
            if name in NUMERIC_FIELDS:
                if value is not None and clean_text(value) is not None:
                    out[name] = value
                    break
            elif clean_text(value) is not None:
                out[name] = value
                break
    return out


def normalize_record(raw: object) -> PatientRecord:
    """Map a loosely-typed external record onto the canonical PatientRecord.

    Required fields (timestamp, patient name, office, carrier, claim status) must be
    non-empty after alias fallback, and the paid amount must not be negative; anything
    else raises ValidationError. Bad emails and unparseable service dates only warn.
    """
    if isinstance(raw, PatientRecord):
        raw = asdict(raw)
    if not isinstance(raw, Mapping):
        raise ValidationError("Invalid record format")

    values = _collect(raw)
    text = {name: clean_text(values[name]) for name in FIELD_ALIASES if name not in NUMERIC_FIELDS}

    missing = [name for name in REQUIRED_FIELDS if text.get(name) is None]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    paid_amount = coerce_amount(values["paid_amount"])
    if paid_amount < 0:
        raise ValidationError(f"Paid amount cannot be negative: {paid_amount}")

    text["dos"] = normalize_dos(text["dos"])
    record = PatientRecord(
        paid_amount=paid_amount,
        productivity_amount=coerce_amount(values["productivity_amount"]),
        **text,
    )

    if record.email_address and not is_valid_email(record.email_address):
        logger.warning("Invalid email format: %s", record.email_address)
    if record.dos and not is_valid_date(record.dos):
        logger.warning("Invalid date format for DOS: %s", record.dos)
    return record


def normalize_records(raws: Iterable[object]) -> List[PatientRecord]:
    out: List[PatientRecord] = []
    for idx, raw in enumerate(raws):
        try:
            out.append(normalize_record(raw))
        except ValidationError as exc:
            logger.error("Validation error for record %d: %s", idx, exc)
    return out


def record_to_dict(record: PatientRecord) -> Dict[str, Any]:
    return asdict(record)


def records_to_frame(records: Iterable[PatientRecord]) -> pd.DataFrame:
    """One row per record, in input order, with every PatientRecord column present."""
    return pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)
