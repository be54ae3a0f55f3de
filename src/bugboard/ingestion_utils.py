"""Utility functions supporting spreadsheet ingestion and normalization.

Stages implemented here (all but the reader are pure and I/O free):
  - read_spreadsheet: bytes -> rectangular grid (row 0 = headers)
  - map_columns: header row -> field index map (substring keywords)
  - normalize_rows: grid rows -> DefectRecord list + counts
  - infer_year / parse_flexible_date: year inference for day/month fragments
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from .common.errors import DecodeError, RowValidationError
from .models import Comment, DefectRecord, format_timestamp
from .standards.fields import DEFAULT_COLUMN_KEYWORDS, SPREADSHEET_FIELDS, UNASSIGNED_OWNER


LOGGER_NAME = "bugboard.ingestion"
LOGGER = logging.getLogger(LOGGER_NAME)

NOT_FOUND = -1

XLSX_MAGIC = b"PK\x03\x04"
XLS_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_DAY_MON = re.compile(r"^(\d{1,2})[-\s]([A-Za-z]{3})[A-Za-z]*$")


# ---------------------------------------------------------------------------
# Spreadsheet Reader
# ---------------------------------------------------------------------------

def detect_format(data: bytes, filename: Optional[str] = None) -> str:
    """Return ``"xlsx"``, ``"xls"`` or ``"csv"`` for the given payload.

    Binary formats are recognised by their magic bytes, so a misnamed file still
    decodes. CSV has no signature and is only accepted on a ``.csv`` name.
    """
    if data.startswith(XLSX_MAGIC):
        return "xlsx"
    if data.startswith(XLS_MAGIC):
        return "xls"
    if filename and Path(filename).suffix.lower() == ".csv":
        return "csv"
    raise DecodeError(f"Unrecognised spreadsheet format{f' for {filename}' if filename else ''}")


def _frame_to_grid(df: pd.DataFrame) -> List[List[Any]]:
    grid: List[List[Any]] = []
    for row in df.itertuples(index=False, name=None):
        grid.append([None if (v is None or (isinstance(v, float) and pd.isna(v))) else v for v in row])
    return grid


def read_spreadsheet(data: bytes, filename: Optional[str] = None) -> List[List[Any]]:
    """Decode the first sheet of a spreadsheet into a grid of cell values.

    Supported formats: xlsx (openpyxl), xls (xlrd), csv (by name only).
    - Cells are read as text so identifiers keep their original form
    - Missing cells are ``None``; every row has the same length
    - Any decoding failure raises :class:`DecodeError` with context
    """
    if not data:
        raise DecodeError("Uploaded file is empty")
    kind = detect_format(data, filename)
    try:
        if kind == "csv":
            df = pd.read_csv(
                BytesIO(data), header=None, dtype=str, sep=None, engine="python", keep_default_na=False
            )
        else:
            engine = "openpyxl" if kind == "xlsx" else "xlrd"
            df = pd.read_excel(
                BytesIO(data), sheet_name=0, header=None, dtype=str, engine=engine, keep_default_na=False
            )
    except pd.errors.EmptyDataError:
        return []
    except Exception as exc:
        raise DecodeError(f"Failed to read {kind} spreadsheet{f' {filename}' if filename else ''}: {exc}") from exc
    grid = _frame_to_grid(df)
    LOGGER.debug("Decoded %s spreadsheet: %d rows x %d cols", kind, len(grid), df.shape[1])
    return grid


# ---------------------------------------------------------------------------
# Column Mapper
# ---------------------------------------------------------------------------

def map_columns(headers: Sequence[Any], keywords: Optional[Mapping[str, str]] = None) -> Dict[str, int]:
    """Locate each spreadsheet field by case-insensitive substring match.

    The first header containing a field's keyword wins. Fields whose keyword
    matches nothing map to ``NOT_FOUND`` (-1) instead of failing.
    """
    kw = dict(DEFAULT_COLUMN_KEYWORDS)
    if keywords:
        kw.update({k: str(v).lower() for k, v in keywords.items()})
    lowered = ["" if h is None else str(h).strip().lower() for h in headers]
    mapping: Dict[str, int] = {}
    for key in SPREADSHEET_FIELDS:
        needle = kw[key]
        mapping[key] = next((i for i, h in enumerate(lowered) if h and needle in h), NOT_FOUND)
    missing = [k for k, i in mapping.items() if i == NOT_FOUND]
    if missing:
        LOGGER.info("Column mapper: no header found for %s", ", ".join(missing))
    return mapping


# ---------------------------------------------------------------------------
# Record Normalizer
# ---------------------------------------------------------------------------

@dataclass
class NormalizationResult:
    """Records produced from one grid plus the rows that were dropped."""

    records: List[DefectRecord] = field(default_factory=list)
    import_time: str = ""
    invalid_rows: int = 0
    malformed_rows: int = 0

    @property
    def dropped_rows(self) -> int:
        return self.invalid_rows + self.malformed_rows


def _cell(row: Sequence[Any], index: int) -> str:
    if index < 0 or index >= len(row):
        return ""
    value = row[index]
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value)


def parse_detailed_comments(text: str, upload_time: str, sort_date: Optional[datetime] = None) -> List[Comment]:
    """Split a legacy detailed-comments blob into one Comment per non-empty line.

    Source sheets carry no per-line timestamps, so every comment is stamped with
    the import time. The sort is stable, so line order is kept.
    """
    if not text:
        return []
    parsed: List[Comment] = []
    for line in _LINE_BREAK.split(str(text)):
        stripped = line.strip()
        if stripped:
            parsed.append(Comment(text=stripped, time=upload_time, original_date=upload_time, sort_date=sort_date))
    return sorted(parsed, key=lambda c: c.sort_date or datetime.min)


def _row_to_record(row: Sequence[Any], column_map: Mapping[str, int], upload_time: str, sort_date: datetime) -> DefectRecord:
    values = {key: _cell(row, column_map.get(key, NOT_FOUND)) for key in SPREADSHEET_FIELDS}
    values["corrective_owner"] = values["corrective_owner"] or UNASSIGNED_OWNER
    comments = parse_detailed_comments(values["detailed_comments"], upload_time, sort_date)
    return DefectRecord(last_updated=upload_time, comments=comments, **values)


def normalize_rows(
    rows: Sequence[Sequence[Any]],
    column_map: Mapping[str, int],
    import_time: datetime,
    logger: Optional[logging.Logger] = None,
) -> NormalizationResult:
    """Convert data rows (header excluded) into defect records.

    Never raises: rows lacking both identifier and description, rows without an
    identifier and rows that fail conversion are logged and skipped.
    """
    log = logger or LOGGER
    stamp = format_timestamp(import_time)
    result = NormalizationResult(import_time=stamp)
    for line_no, row in enumerate(rows, start=2):
        if not any(_cell(row, i) for i in range(len(row))):
            continue
        try:
            record = _row_to_record(row, column_map, stamp, import_time)
        except RowValidationError:
            result.invalid_rows += 1
            log.debug("Row %d skipped: no incident id and no description", line_no)
            continue
        except Exception as exc:
            result.malformed_rows += 1
            log.warning("Row %d skipped: %s", line_no, exc)
            continue
        if not record.incident_id:
            result.invalid_rows += 1
            log.debug("Row %d skipped: missing incident id", line_no)
            continue
        result.records.append(record)
    log.info(
        "Normalized %d records (%d invalid, %d malformed rows skipped)",
        len(result.records),
        result.invalid_rows,
        result.malformed_rows,
    )
    return result


# ---------------------------------------------------------------------------
# Date inference
# ---------------------------------------------------------------------------

def infer_year(day: int, month: int, today: date) -> int:
    """Pick the year for a day/month fragment that carries none.

    Entries are dated in the past relative to upload time: a day/month earlier
    than today is this year, anything else (today included) is last year.
    """
    if month < today.month or (month == today.month and day < today.day):
        return today.year
    return today.year - 1


def _full_year(text: str) -> int:
    year = int(text)
    return year + 2000 if year < 100 else year


def infer_reported_datetime(text: str, fmt: str = "EU", now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse a free-text date fragment; ``None`` when it cannot be understood.

    EU: ``DD/MM`` or ``DD/MM/YYYY``; US: ``MM/DD/YYYY``; both accept ``DD-Mon``.
    Yearless fragments go through :func:`infer_year`.
    """
    now = now or datetime.now()
    s = str(text or "").strip()
    if not s:
        return None
    try:
        if "/" in s:
            parts = [p.strip() for p in s.split("/")]
            if not all(p.isdigit() for p in parts):
                return None
            if fmt.upper() == "US":
                if len(parts) != 3:
                    return None
                month, day, year = int(parts[0]), int(parts[1]), _full_year(parts[2])
            elif len(parts) == 2:
                day, month = int(parts[0]), int(parts[1])
                year = infer_year(day, month, now.date())
            elif len(parts) == 3:
                day, month, year = int(parts[0]), int(parts[1]), _full_year(parts[2])
            else:
                return None
            return datetime(year, month, day)
        m = _DAY_MON.match(s)
        if m and m.group(2).lower() in _MONTHS:
            day, month = int(m.group(1)), _MONTHS[m.group(2).lower()]
            return datetime(infer_year(day, month, now.date()), month, day)
    except ValueError:
        LOGGER.debug("Unparseable date fragment %r", s)
    return None


def parse_flexible_date(text: str, fmt: str = "EU", now: Optional[datetime] = None) -> str:
    """Return the canonical timestamp for a date fragment, or ``now`` when unparseable."""
    now = now or datetime.now()
    parsed = infer_reported_datetime(text, fmt=fmt, now=now)
    return format_timestamp(parsed if parsed is not None else now)
