from io import BytesIO

import pytest
from openpyxl import load_workbook

from bugboard.common.config_validator import ExportConfig
from bugboard.common.errors import NothingToExportError
from bugboard.export_utils import (
    export_open_summary,
    filter_open,
    records_to_frame,
    write_open_summary,
)
from bugboard.models import WeeklySets
from bugboard.standards.fields import export_headers

from conftest import make_record


def test_filter_open_is_case_insensitive():
    records = [make_record("A", status="Open"), make_record("B", status="closed"), make_record("C", status=" OPEN ")]
    assert [r.incident_id for r in filter_open(records)] == ["A", "C"]


def test_records_to_frame_column_order():
    df = records_to_frame([make_record("A")])
    assert list(df.columns) == export_headers()
    assert "Last Updated" not in df.columns
    assert df.loc[0, "Incident/Bug ID"] == "A"
    assert list(df.columns)[:4] == ["Application", "Business Function", "Incident/Bug ID", "Bug Description"]


def test_export_only_open_rows():
    sets = WeeklySets(
        current=[make_record("A", status="Open"), make_record("B", status="Closed")],
        last=[make_record("C", status="Closed")],
    )
    wb = load_workbook(BytesIO(export_open_summary(sets)))

    assert wb.sheetnames == ["Current Week Bugs", "Bugs upto Last Week"]
    current = wb["Current Week Bugs"]
    assert current.max_row == 2
    assert [c.value for c in current[1]] == export_headers()
    assert current.cell(row=2, column=3).value == "A"
    # Header row only
    assert wb["Bugs upto Last Week"].max_row == 1


def test_export_with_nothing_open_raises():
    sets = WeeklySets(current=[make_record("A", status="Closed")])
    with pytest.raises(NothingToExportError):
        export_open_summary(sets)


def test_write_open_summary_to_directory(tmp_path):
    sets = WeeklySets(last=[make_record("L1")])
    out = write_open_summary(sets, tmp_path / "exports", ExportConfig(file_name="summary.xlsx"))

    assert out == tmp_path / "exports" / "summary.xlsx"
    wb = load_workbook(out)
    assert wb["Bugs upto Last Week"].cell(row=2, column=3).value == "L1"
