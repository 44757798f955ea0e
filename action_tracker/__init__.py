"""Core (UI-agnostic) action tracker logic.

This package contains:
- warehouse access (BigQuery -> list of dict records)
- column resolution and record normalization (records -> pandas)
- filters, pivot, day-wise rollup and drill-down
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
