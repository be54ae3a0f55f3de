"""Views over the weekly sets used by the dashboard: owner breakdowns, drill-down and search."""
from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd

from .ingestion_utils import infer_reported_datetime
from .models import DefectRecord
from .standards.fields import BUG_FIELDS, UNASSIGNED_OWNER


def _owner(record: DefectRecord) -> str:
    return record.corrective_owner or UNASSIGNED_OWNER


def owner_breakdown(records: Iterable[DefectRecord]) -> pd.DataFrame:
    """Count records per corrective-action owner (pie-chart data).

    Owners appear in first-seen order; ``percent`` is rounded to one decimal.
    """
    owners = pd.Series([_owner(r) for r in records], dtype="string")
    if owners.empty:
        return pd.DataFrame({"owner": pd.Series(dtype="string"), "count": pd.Series(dtype="int64"), "percent": pd.Series(dtype="float64")})
    counts = owners.groupby(owners, sort=False).size()
    out = counts.rename_axis("owner").reset_index(name="count")
    out["count"] = out["count"].astype("int64")
    out["percent"] = (out["count"] / out["count"].sum() * 100).round(1)
    return out


def records_for_owner(records: Iterable[DefectRecord], owner: str) -> List[DefectRecord]:
    """Records whose owner equals ``owner`` ignoring case (drill-down from a pie slice)."""
    wanted = (owner or "").lower()
    return [r for r in records if (r.corrective_owner or "").lower() == wanted]


def search_records(records: Iterable[DefectRecord], query: str, owner: Optional[str] = None) -> List[DefectRecord]:
    """Case-insensitive substring search over every display field."""
    needle = (query or "").lower()
    owner_needle = (owner or "").lower()
    hits: List[DefectRecord] = []
    for r in records:
        if owner_needle and owner_needle not in (r.corrective_owner or "").lower():
            continue
        if not needle or any(needle in r.value(f.key).lower() for f in BUG_FIELDS):
            hits.append(r)
    return hits


def sort_by_reported(records: Iterable[DefectRecord], fmt: str = "EU", now: Optional[datetime] = None) -> List[DefectRecord]:
    """Newest reported first; records with an unparseable date keep their order at the end."""
    now = now or datetime.now()
    keyed = [(infer_reported_datetime(r.date_reported, fmt=fmt, now=now), i, r) for i, r in enumerate(records)]
    dated = sorted((k for k in keyed if k[0] is not None), key=lambda k: k[0], reverse=True)
    undated = [k for k in keyed if k[0] is None]
    return [r for _, _, r in [*dated, *undated]]
