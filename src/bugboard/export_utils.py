"""Excel summary of open defects.

The workbook has two sheets, one per weekly set, each listing only records
whose corrective-action status is open. Columns follow the display field order
with their labels; the internal last-updated stamp is not exported.
"""
from __future__ import annotations

import logging
from io import BytesIO
from pathlib import Path
from typing import Iterable, List

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font

from .common.config_validator import ExportConfig
from .common.errors import NothingToExportError
from .models import DefectRecord, WeeklySets
from .standards.fields import EXPORT_FIELDS, export_headers


LOGGER = logging.getLogger("bugboard.export")


def _safe_sheet_name(name: str) -> str:
    """Return a sheet-safe string (openpyxl constraints)."""
    sanitized = "".join(ch if ch not in '[]:*?/\\' else '_' for ch in str(name))
    return sanitized[:31] if sanitized else "Sheet"


def filter_open(records: Iterable[DefectRecord], open_status: str = "open") -> List[DefectRecord]:
    wanted = open_status.strip().lower()
    return [r for r in records if r.corrective_status.strip().lower() == wanted]


def records_to_frame(records: Iterable[DefectRecord]) -> pd.DataFrame:
    """Tabulate records with export labels as columns, in display order."""
    rows = [[r.value(f.key) for f in EXPORT_FIELDS] for r in records]
    return pd.DataFrame(rows, columns=export_headers())


def _auto_fit_columns(ws) -> None:
    # Simple auto width based on max length per column
    for col_cells in ws.columns:
        max_len = 0
        col = col_cells[0].column_letter
        for cell in col_cells:
            val = "" if cell.value is None else str(cell.value)
            longest_line = max((len(part) for part in val.split("\n")), default=0)
            max_len = max(max_len, longest_line)
        ws.column_dimensions[col].width = min(max(10, max_len + 2), 60)


def _write_sheet(ws, df: pd.DataFrame) -> None:
    """Write headers and rows; an empty frame still gets its header row."""
    ws.append(list(df.columns))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in df.itertuples(index=False, name=None):
        ws.append(["" if v is None else v for v in row])
    _auto_fit_columns(ws)
    ws.freeze_panes = "A2"


def build_open_summary(sets: WeeklySets, config: ExportConfig | None = None) -> Workbook:
    """Build the two-sheet workbook; raises NothingToExportError when no record is open."""
    config = config or ExportConfig()
    open_current = filter_open(sets.current, config.open_status)
    open_last = filter_open(sets.last, config.open_status)
    if not open_current and not open_last:
        raise NothingToExportError("No Open status bugs to export.")

    wb = Workbook()
    ws_current = wb.active
    ws_current.title = _safe_sheet_name(config.current_sheet)
    _write_sheet(ws_current, records_to_frame(open_current))

    ws_last = wb.create_sheet(_safe_sheet_name(config.last_sheet))
    _write_sheet(ws_last, records_to_frame(open_last))

    LOGGER.info(
        "Open summary built: '%s' rows=%d | '%s' rows=%d",
        ws_current.title,
        len(open_current),
        ws_last.title,
        len(open_last),
    )
    return wb


def export_open_summary(sets: WeeklySets, config: ExportConfig | None = None) -> bytes:
    """Return the open-defect summary workbook as xlsx bytes."""
    buffer = BytesIO()
    build_open_summary(sets, config).save(buffer)
    return buffer.getvalue()


def write_open_summary(sets: WeeklySets, output_path: Path, config: ExportConfig | None = None) -> Path:
    """Save the summary to ``output_path`` (a directory gets the configured file name)."""
    config = config or ExportConfig()
    output_path = Path(output_path)
    file_path = output_path if output_path.suffix.lower() == ".xlsx" else output_path / config.file_name
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(export_open_summary(sets, config))
    LOGGER.info("Open summary saved: %s", str(file_path))
    return file_path
