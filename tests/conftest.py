import sys
from datetime import datetime
from io import BytesIO
from pathlib import Path

import pytest
from openpyxl import Workbook

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from bugboard.models import DefectRecord  # noqa: E402


HEADERS = [
    "Application",
    "Business Function",
    "Incident/Bug ID",
    "Bug Description",
    "Date Reported",
    "Bug Status",
    "Environment",
    "High Level Root Cause",
    "Detailed Comments",
    "QA Corrective Action",
    "Corrective Action Status",
    "Corrective Action Owner",
]


def make_row(incident_id, description="desc", status="Open", owner="Alice", comments="", **extra):
    row = {
        "Application": extra.get("application", "GIC"),
        "Business Function": extra.get("business_function", "Batch"),
        "Incident/Bug ID": incident_id,
        "Bug Description": description,
        "Date Reported": extra.get("date_reported", "05/03"),
        "Bug Status": extra.get("bug_status", "Active"),
        "Environment": extra.get("environment", "3 - UAT"),
        "High Level Root Cause": extra.get("root_cause", "Environment Issue"),
        "Detailed Comments": comments,
        "QA Corrective Action": extra.get("qa_corrective_action", ""),
        "Corrective Action Status": status,
        "Corrective Action Owner": owner,
    }
    return [row[h] for h in HEADERS]


def make_xlsx(rows, headers=HEADERS) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(list(headers))
    for row in rows:
        ws.append(list(row))
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def make_record(incident_id, status="Open", owner="Alice", **kwargs) -> DefectRecord:
    kwargs.setdefault("description", f"Bug {incident_id}")
    return DefectRecord(incident_id=incident_id, corrective_status=status, corrective_owner=owner, **kwargs)


@pytest.fixture
def fixed_now():
    return datetime(2025, 3, 10, 14, 30, 0)


@pytest.fixture
def clock(fixed_now):
    return lambda: fixed_now
