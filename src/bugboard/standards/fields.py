"""Centralized definitions for defect fields, header keywords and option lists.

Every stage that needs to know "which fields exist" reads them from here:
  - the column mapper (header keyword per field)
  - the exporter (label and order of the exported columns)
  - the option-list store (storage names and default values)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple


@dataclass(frozen=True)
class FieldSpec:
    key: str
    label: str
    description: str
    keyword: str | None = None
    storage_name: str | None = None


# Display order matches the exported summary and the record editor.
BUG_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("application", "Application", "Application for which bug is reported", "application", "application"),
    FieldSpec("business_function", "Business Function", "High level Function within the Application", "business function", "businessFunction"),
    FieldSpec("incident_id", "Incident/Bug ID", "Incident Number from SNOW or Bug ID from ADO", "incident", "incidentId"),
    FieldSpec("description", "Bug Description", "Short Description from SNOW or ADO", "description", "bugDescription"),
    FieldSpec("date_reported", "Date Reported", "Date the Bug was reported", "date reported", "dateReported"),
    FieldSpec("bug_status", "Bug Status", "ADO Status", "bug status", "bugStatus"),
    FieldSpec("environment", "Environment", "UAT or PROD", "environment", "environment"),
    FieldSpec("root_cause", "High Level Root Cause", "Select from mentioned list", "root cause", "rootCause"),
    FieldSpec("detailed_comments", "Detailed Comments", "Comments with date and time stamps", "detailed comments", "detailedComments"),
    FieldSpec("qa_corrective_action", "QA Corrective Action", "QA team corrective action details", "qa corrective action", "qaCorrectiveAction"),
    FieldSpec("corrective_status", "Corrective Action Status", "Open or Closed", "corrective action status", "correctiveStatus"),
    FieldSpec("corrective_owner", "Corrective Action Owner", "Team Member Name", "corrective action owner", "correctiveOwner"),
    FieldSpec("last_updated", "Last Updated", "Last Updated Date", None, "lastUpdated"),
)

FIELDS_BY_KEY: Dict[str, FieldSpec] = {f.key: f for f in BUG_FIELDS}

# The twelve fields read from an uploaded sheet (everything but last_updated).
SPREADSHEET_FIELDS: Tuple[str, ...] = tuple(f.key for f in BUG_FIELDS if f.keyword)

EXPORT_FIELDS: Tuple[FieldSpec, ...] = tuple(f for f in BUG_FIELDS if f.key != "last_updated")

DEFAULT_COLUMN_KEYWORDS: Dict[str, str] = {f.key: f.keyword for f in BUG_FIELDS if f.keyword}

# Enumerated fields backed by a user-extensible option list.
OPTION_FIELDS: Tuple[str, ...] = (
    "application",
    "business_function",
    "environment",
    "root_cause",
    "corrective_status",
    "corrective_owner",
)

UNASSIGNED_OWNER = "Unassigned"

DEFAULT_OPTIONS: Dict[str, List[str]] = {
    "application": ["GIC", "Facets", "ETL", "EDM"],
    "business_function": ["Batch", "GIC", "Cigna", "OncoHealth"],
    "environment": ["3 - UAT", "4 - Prod"],
    "root_cause": [
        "Environment Issue",
        "Test Data Unavailable",
        "Missed QA Test Scenario",
        "Requirement Enhancement",
        "Not a Valid Bug",
        "Unable to Recreate",
        "Not QA Tested",
    ],
    "corrective_status": ["Open", "Closed"],
    "corrective_owner": [UNASSIGNED_OWNER],
}


def option_storage_key(field_key: str) -> str:
    """Return the persisted key for an option list, e.g. ``options_rootCause``."""
    if field_key not in OPTION_FIELDS:
        raise KeyError(f"Not an option field: {field_key}")
    return f"options_{FIELDS_BY_KEY[field_key].storage_name}"


def export_headers() -> List[str]:
    return [f.label for f in EXPORT_FIELDS]
