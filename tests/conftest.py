"""Shared test fixtures for the claims pipeline tests."""

import pytest

from claims.config import SourceConfig
from claims.records import PatientRecord


@pytest.fixture
def make_record():
    """Factory for canonical records with sensible defaults."""

    def _make(**overrides):
        base = dict(
            timestamp="2024-03-01T09:00:00",
            patient_name="Ann Lee",
            offices="Downtown Office",
            insurance_carrier="Aetna",
            claim_status="Paid",
            paid_amount=100.0,
        )
        base.update(overrides)
        return PatientRecord(**base)

    return _make


@pytest.fixture
def records(make_record):
    return [
        make_record(patient_name="Ann Lee", offices="Downtown Office", insurance_carrier="Aetna",
                    claim_status="Paid", paid_amount=150.0, status="Completed", dos="2024-03-01",
                    type_of_interaction="Cleaning", email_address="ann@example.com"),
        make_record(patient_name="Bo Chen", offices="Uptown Office", insurance_carrier="Delta Dental",
                    claim_status="Pending", paid_amount=300.0, status="In Progress", dos="2024-03-05",
                    type_of_interaction="Root Canal", comments_reasons="Waiting on X-ray"),
        make_record(patient_name="Cara Diaz", offices="Downtown Office", insurance_carrier="Cigna",
                    claim_status="Denied", paid_amount=0.0, status="complete", dos="2024-02-20",
                    escalated_to="Billing Lead"),
        make_record(patient_name="Dev Patel", offices="Westside Office", insurance_carrier="Aetna",
                    claim_status="Paid", paid_amount=75.5, status=None, dos=None,
                    type_of_interaction="Checkup", how_we_proceeded="Resubmitted"),
        make_record(patient_name="Eli Moss", offices="Uptown Office", insurance_carrier="MetLife",
                    claim_status="paid", paid_amount=220.0, status="COMPLETED", dos="2024-03-10",
                    type_of_interaction="Cleaning", missing_docs_or_information="Narrative"),
    ]


@pytest.fixture
def source_config():
    return SourceConfig(
        script_url="https://sheets.test/exec",
        proxy_url="https://proxy.test/api/proxy",
        max_retries=3,
        backoff_base_seconds=1.0,
        backoff_max_seconds=10.0,
    )


@pytest.fixture
def sleeps():
    """Records backoff delays instead of sleeping."""
    delays = []

    async def _sleep(seconds):
        delays.append(seconds)

    _sleep.delays = delays
    return _sleep
