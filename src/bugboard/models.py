"""Typed records for defects, comments, attachments and the weekly sets.

Persisted JSON keeps the field names of the stored browser documents
(``incidentId``, ``correctiveOwner``...) so existing exports load unchanged;
``from_dict`` accepts both those names and the Python attribute names.
"""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .common.errors import RowValidationError
from .standards.fields import BUG_FIELDS, UNASSIGNED_OWNER


TIMESTAMP_FMT = "%m/%d/%Y, %I:%M:%S %p"


def format_timestamp(dt: datetime) -> str:
    """Render ``dt`` as ``MM/DD/YYYY, hh:mm:ss AM``."""
    return dt.strftime(TIMESTAMP_FMT)


def parse_timestamp(text: str) -> Optional[datetime]:
    try:
        return datetime.strptime(str(text).strip(), TIMESTAMP_FMT)
    except ValueError:
        return None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


@dataclass
class Comment:
    text: str
    time: str
    original_date: Optional[str] = None
    sort_date: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"text": self.text, "time": self.time}
        if self.original_date is not None:
            out["originalDate"] = self.original_date
        if self.sort_date is not None:
            out["sortDate"] = self.sort_date.isoformat()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        sort_raw = data.get("sortDate", data.get("sort_date"))
        sort_date: Optional[datetime] = None
        if isinstance(sort_raw, datetime):
            sort_date = sort_raw
        elif sort_raw:
            try:
                sort_date = datetime.fromisoformat(str(sort_raw).replace("Z", "+00:00"))
            except ValueError:
                sort_date = None
        return cls(
            text=_as_text(data.get("text")),
            time=_as_text(data.get("time")),
            original_date=data.get("originalDate", data.get("original_date")),
            sort_date=sort_date,
        )


@dataclass
class DefectRecord:
    """One tracked bug/incident.

    The constructor enforces that a record has an incident identifier or a
    description; a record with neither raises :class:`RowValidationError`.
    """

    incident_id: str
    description: str = ""
    application: str = ""
    business_function: str = ""
    date_reported: str = ""
    bug_status: str = ""
    environment: str = ""
    root_cause: str = ""
    detailed_comments: str = ""
    qa_corrective_action: str = ""
    corrective_status: str = ""
    corrective_owner: str = UNASSIGNED_OWNER
    last_updated: str = ""
    comments: List[Comment] = field(default_factory=list)

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name == "comments":
                continue
            setattr(self, f.name, _as_text(getattr(self, f.name)))
        self.incident_id = self.incident_id.strip()
        if not self.incident_id and not self.description.strip():
            raise RowValidationError("Defect record needs an incident identifier or a description")
        if not self.corrective_owner:
            self.corrective_owner = UNASSIGNED_OWNER

    @property
    def is_open(self) -> bool:
        return self.corrective_status.strip().lower() == "open"

    def value(self, key: str) -> str:
        return getattr(self, key)

    def touched(self, timestamp: str, **changes: Any) -> "DefectRecord":
        """Return a copy with ``changes`` applied and last_updated refreshed."""
        return replace(self, last_updated=timestamp, **changes)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for fs in BUG_FIELDS:
            out[fs.storage_name or fs.key] = getattr(self, fs.key)
        out["comments"] = [c.to_dict() for c in self.comments]
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DefectRecord":
        kwargs: Dict[str, Any] = {}
        for fs in BUG_FIELDS:
            if fs.storage_name and fs.storage_name in data:
                kwargs[fs.key] = data[fs.storage_name]
            elif fs.key in data:
                kwargs[fs.key] = data[fs.key]
        kwargs.setdefault("incident_id", "")
        kwargs["comments"] = [
            c if isinstance(c, Comment) else Comment.from_dict(c)
            for c in (data.get("comments") or [])
        ]
        return cls(**kwargs)


@dataclass
class Attachment:
    id: int
    name: str
    type: str
    size: int
    upload_date: str
    data: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "size": self.size,
            "uploadDate": self.upload_date,
            "data": self.data,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Attachment":
        return cls(
            id=int(data["id"]),
            name=_as_text(data.get("name")),
            type=_as_text(data.get("type")),
            size=int(data.get("size") or 0),
            upload_date=_as_text(data.get("uploadDate", data.get("upload_date"))),
            data=_as_text(data.get("data")),
        )


@dataclass
class WeeklySets:
    """The two mutually exclusive partitions of the active record universe."""

    current: List[DefectRecord] = field(default_factory=list)
    last: List[DefectRecord] = field(default_factory=list)

    def all_records(self) -> List[DefectRecord]:
        return [*self.current, *self.last]

    def __iter__(self) -> Iterator[DefectRecord]:
        return iter(self.all_records())

    def incident_ids(self) -> set[str]:
        return {r.incident_id for r in self.all_records()}

    def locate(self, incident_id: str) -> Optional[str]:
        """Return ``"current"``, ``"last"`` or ``None`` for an identifier."""
        if any(r.incident_id == incident_id for r in self.current):
            return "current"
        if any(r.incident_id == incident_id for r in self.last):
            return "last"
        return None

    def find(self, incident_id: str) -> Optional[DefectRecord]:
        for record in self.all_records():
            if record.incident_id == incident_id:
                return record
        return None


def duplicate_ids(records: Iterable[DefectRecord]) -> List[str]:
    """Return identifiers that occur more than once, in first-seen order."""
    seen: set[str] = set()
    dups: List[str] = []
    for r in records:
        if r.incident_id in seen and r.incident_id not in dups:
            dups.append(r.incident_id)
        seen.add(r.incident_id)
    return dups
