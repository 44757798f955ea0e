import pytest

from action_tracker.data import build_data_context, prepare_context


COLUMNS = [
    {"key": "id", "label": "ID"},
    {"key": "business", "label": "BUSINESS"},
    {"key": "businessType", "label": "BUSINESS TYPE"},
    {"key": "process", "label": "PROCESS"},
    {"key": "subType", "label": "PROCESS SUBTYPE"},
    {"key": "deliverable", "label": "DELIVERABLE"},
    {"key": "status", "label": "STATUS"},
    {"key": "owner", "label": "OWNER"},
    {"key": "priority", "label": "PRIORITY"},
    {"key": "createDate", "label": "CREATE DATE"},
    {"key": "deadline", "label": "DEADLINE"},
    {"key": "min", "label": "MIN"},
]


@pytest.fixture
def example_rows():
    return [
        {"business": "Acme", "status": "Open", "min": 30},
        {"business": "acme ", "status": "open", "min": 45},
        {"business": "Beta", "status": "Closed", "min": 10},
    ]


@pytest.fixture
def example_ctx(example_rows):
    return build_data_context({"rows": example_rows})


@pytest.fixture
def tracker_rows():
    return [
        {
            "id": "a1",
            "business": "Acme",
            "businessType": "Retail",
            "process": "Billing",
            "subType": "Invoices",
            "deliverable": "Report",
            "status": "In Progress",
            "owner": "Ravi",
            "priority": "High",
            "createDate": "2026-01-13",
            "deadline": "2026-01-20",
            "min": 60,
        },
        {
            "id": "a2",
            "business": "acme",
            "businessType": "retail",
            "process": "Billing",
            "subType": None,
            "deliverable": "Report",
            "status": "completed",
            "owner": "Meera",
            "priority": "V High",
            "createDate": "1/13/2026",
            "deadline": "2026-01-10",
            "min": "30 min",
        },
        {
            "id": "a3",
            "business": "Beta",
            "businessType": "Wholesale",
            "process": "Audit",
            "subType": "Stock",
            "deliverable": "Checklist",
            "status": "Stuck",
            "owner": "Ravi",
            "priority": "Low",
            "createDate": {"value": "2026-01-14"},
            "deadline": None,
            "min": 90,
        },
        {
            "id": "a4",
            "business": "Beta",
            "businessType": "Wholesale",
            "process": "Audit",
            "subType": "Stock",
            "deliverable": None,
            "status": "Not Started",
            "owner": None,
            "priority": None,
            "createDate": "not a date",
            "deadline": "2026-01-01",
            "min": "n/a",
        },
    ]


@pytest.fixture
def tracker_payload(tracker_rows):
    return {"columns": COLUMNS, "rows": tracker_rows}


@pytest.fixture
def tracker_data(tracker_payload):
    return build_data_context(tracker_payload)


@pytest.fixture
def tracker_ctx(tracker_data):
    return prepare_context(None, tracker_data)
