"""Core (UI-agnostic) claims dashboard logic.

This package contains:
- remote fetch (spreadsheet API -> raw dicts) with retry and fallback data
- record normalization (raw dicts -> PatientRecord)
- filter normalization and filtering
- metrics / analytics compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
