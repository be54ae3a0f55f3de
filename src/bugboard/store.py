"""Key/value persistence for weekly sets, attachments and option lists.

Every write replaces the whole document stored under one key; there is no
partial update and no transaction spanning several keys.

Layout:
  currentWeekBugs            -> list of defect records
  lastWeekBugs               -> list of defect records
  attachments_<incidentId>   -> list of attachments for that record
  options_<fieldName>        -> list of strings
"""
from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote, unquote

from .common.errors import RowValidationError, StorageError
from .models import Attachment, DefectRecord, WeeklySets
from .standards.fields import DEFAULT_OPTIONS, OPTION_FIELDS, option_storage_key


LOGGER = logging.getLogger("bugboard.store")

CURRENT_WEEK_KEY = "currentWeekBugs"
LAST_WEEK_KEY = "lastWeekBugs"


def attachment_key(incident_id: str) -> str:
    return f"attachments_{incident_id}"


class KeyValueStore:
    """Minimal whole-document store: ``get``/``put``/``delete`` by key."""

    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def put(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError


class InMemoryStore(KeyValueStore):
    """Dict-backed store; values are deep-copied so callers never share state."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.put(key, value)

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    def put(self, key: str, value: Any) -> None:
        try:
            # Serialisability check mirrors what the file store requires.
            json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Value for {key!r} is not JSON serialisable: {exc}") from exc
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class JsonDirectoryStore(KeyValueStore):
    """One JSON file per key under ``root``; writes go through a temp file.

    File names are the percent-encoded key, so distinct keys never share a file
    and ``keys()`` returns the keys exactly as they were written.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).expanduser()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create store directory {self.root}: {exc}") from exc

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Failed to read {key!r} from {path}: {exc}") from exc

    def put(self, key: str, value: Any) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        try:
            tmp.write_text(json.dumps(value, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            raise StorageError(f"Failed to write {key!r} to {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete {key!r}: {exc}") from exc

    def keys(self) -> List[str]:
        return sorted(unquote(p.stem) for p in self.root.glob("*.json"))


class BugRepository:
    """Typed access to the persisted collections on top of a KeyValueStore."""

    def __init__(self, store: KeyValueStore, default_options: Optional[Dict[str, List[str]]] = None) -> None:
        self.store = store
        self.default_options = {
            name: list((default_options or DEFAULT_OPTIONS).get(name, DEFAULT_OPTIONS[name]))
            for name in OPTION_FIELDS
        }

    # -- weekly sets ---------------------------------------------------------

    def _load_records(self, key: str) -> List[DefectRecord]:
        raw = self.store.get(key, [])
        if not isinstance(raw, list):
            raise StorageError(f"Stored value for {key!r} is not a list")
        records: List[DefectRecord] = []
        for item in raw:
            try:
                records.append(DefectRecord.from_dict(item))
            except (RowValidationError, TypeError, AttributeError) as exc:
                LOGGER.warning("Dropping unreadable record under %s: %s", key, exc)
        return records

    def load_weekly_sets(self) -> WeeklySets:
        return WeeklySets(current=self._load_records(CURRENT_WEEK_KEY), last=self._load_records(LAST_WEEK_KEY))

    def save_current(self, records: Iterable[DefectRecord]) -> None:
        self.store.put(CURRENT_WEEK_KEY, [r.to_dict() for r in records])

    def save_last(self, records: Iterable[DefectRecord]) -> None:
        self.store.put(LAST_WEEK_KEY, [r.to_dict() for r in records])

    def save_weekly_sets(self, sets: WeeklySets) -> None:
        # Two independent writes; a failure between them leaves the keys out of step.
        self.save_current(sets.current)
        self.save_last(sets.last)

    def clear_weekly_sets(self) -> None:
        self.store.delete(CURRENT_WEEK_KEY)
        self.store.delete(LAST_WEEK_KEY)

    # -- attachments ---------------------------------------------------------

    def load_attachments(self, incident_id: str) -> List[Attachment]:
        raw = self.store.get(attachment_key(incident_id), [])
        if not isinstance(raw, list):
            raise StorageError(f"Stored attachments for {incident_id!r} are not a list")
        return [Attachment.from_dict(item) for item in raw]

    def save_attachments(self, incident_id: str, attachments: Iterable[Attachment]) -> None:
        self.store.put(attachment_key(incident_id), [a.to_dict() for a in attachments])

    def delete_attachments(self, incident_id: str) -> None:
        self.store.delete(attachment_key(incident_id))

    # -- option lists --------------------------------------------------------

    def load_options(self, name: str) -> List[str]:
        raw = self.store.get(option_storage_key(name))
        if isinstance(raw, list) and raw:
            return [str(v) for v in raw]
        return list(self.default_options[name])

    def load_all_options(self) -> Dict[str, List[str]]:
        return {name: self.load_options(name) for name in OPTION_FIELDS}

    def save_options(self, name: str, values: Iterable[str]) -> None:
        self.store.put(option_storage_key(name), list(dict.fromkeys(values)))
