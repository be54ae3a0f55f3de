from datetime import datetime

import pytest

from bugboard.common.errors import RowValidationError
from bugboard.models import (
    Comment,
    DefectRecord,
    WeeklySets,
    duplicate_ids,
    format_timestamp,
    parse_timestamp,
)

from conftest import make_record


def test_record_requires_id_or_description():
    with pytest.raises(RowValidationError):
        DefectRecord(incident_id="  ", description="")
    assert DefectRecord(incident_id="", description="only text").description == "only text"


def test_record_defaults_and_coercion():
    record = DefectRecord(incident_id=" 42 ", description=None, corrective_owner="")
    assert record.incident_id == "42"
    assert record.description == ""
    assert record.corrective_owner == "Unassigned"


def test_record_dict_uses_stored_field_names():
    record = make_record("INC9", application="GIC", comments=[Comment(text="hi", time="T")])
    data = record.to_dict()

    assert data["incidentId"] == "INC9"
    assert data["bugDescription"] == "Bug INC9"
    assert data["correctiveOwner"] == "Alice"
    assert data["comments"] == [{"text": "hi", "time": "T"}]
    assert DefectRecord.from_dict(data) == record


def test_record_from_dict_accepts_attribute_names():
    record = DefectRecord.from_dict({"incident_id": "X1", "description": "d", "corrective_status": "Open"})
    assert record.is_open
    assert record.corrective_owner == "Unassigned"


def test_touched_refreshes_timestamp_only_on_copy():
    record = make_record("A")
    updated = record.touched("03/10/2025, 02:30:00 PM", bug_status="Resolved")
    assert updated.last_updated == "03/10/2025, 02:30:00 PM"
    assert updated.bug_status == "Resolved"
    assert record.last_updated == ""


def test_comment_sort_date_round_trip():
    comment = Comment(text="t", time="T", original_date="T", sort_date=datetime(2025, 3, 10, 9, 0))
    data = comment.to_dict()
    assert data["sortDate"] == "2025-03-10T09:00:00"
    assert Comment.from_dict(data) == comment


def test_timestamp_format():
    stamp = format_timestamp(datetime(2025, 3, 10, 14, 5, 9))
    assert stamp == "03/10/2025, 02:05:09 PM"
    assert parse_timestamp(stamp) == datetime(2025, 3, 10, 14, 5, 9)
    assert parse_timestamp("not a time") is None


def test_weekly_sets_lookup():
    sets = WeeklySets(current=[make_record("A")], last=[make_record("B")])
    assert sets.locate("A") == "current"
    assert sets.locate("B") == "last"
    assert sets.locate("Z") is None
    assert sets.find("B").incident_id == "B"
    assert sets.incident_ids() == {"A", "B"}


def test_duplicate_ids_first_seen_order():
    records = [make_record(i) for i in ["A", "B", "A", "C", "B", "A"]]
    assert duplicate_ids(records) == ["A", "B"]
