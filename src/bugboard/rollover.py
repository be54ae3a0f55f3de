"""Rollover reconciliation for weekly uploads.

Each upload is "this week's defect list". Reconciling a batch:
  1) keeps the first occurrence of every incident id within the file
  2) drops ids already tracked in either weekly set (stored data wins)
  3) leaves the sets untouched when nothing new remains
  4) otherwise demotes current + last into last, and installs the batch as current
  5) appends unseen values of the enumerated fields to their option lists

Everything here is pure: inputs are never mutated and no store is touched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .models import DefectRecord, WeeklySets, duplicate_ids
from .standards.fields import OPTION_FIELDS


LOGGER = logging.getLogger("bugboard.rollover")


@dataclass
class RolloverResult:
    """Outcome of reconciling one batch against the stored weekly sets."""

    sets: WeeklySets
    added: List[DefectRecord] = field(default_factory=list)
    skipped_duplicate_count: int = 0
    file_internal_duplicate_count: int = 0
    options: Dict[str, List[str]] = field(default_factory=dict)
    new_option_values: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def rolled_over(self) -> bool:
        return bool(self.added)

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def existing_duplicate_count(self) -> int:
        """Rows skipped because their id was already tracked."""
        return self.skipped_duplicate_count - self.file_internal_duplicate_count


def dedupe_within_batch(records: Iterable[DefectRecord]) -> List[DefectRecord]:
    """Keep the first record for each incident id, preserving order."""
    seen: set[str] = set()
    unique: List[DefectRecord] = []
    for record in records:
        if record.incident_id in seen:
            continue
        seen.add(record.incident_id)
        unique.append(record)
    return unique


def drop_existing(records: Iterable[DefectRecord], sets: WeeklySets) -> List[DefectRecord]:
    existing = sets.incident_ids()
    return [r for r in records if r.incident_id not in existing]


def extend_option_lists(
    options: Mapping[str, Sequence[str]],
    records: Iterable[DefectRecord],
) -> tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    """Append distinct non-empty field values to each option list.

    Returns (updated option lists, values that were newly appended).
    """
    records = list(records)
    updated: Dict[str, List[str]] = {}
    appended: Dict[str, List[str]] = {}
    for name in OPTION_FIELDS:
        current = list(dict.fromkeys(options.get(name, [])))
        known = set(current)
        added: List[str] = []
        for record in records:
            value = record.value(name)
            if value and value not in known:
                known.add(value)
                added.append(value)
        updated[name] = current + added
        if added:
            appended[name] = added
    return updated, appended


def reconcile(
    new_records: Sequence[DefectRecord],
    sets: WeeklySets,
    options: Optional[Mapping[str, Sequence[str]]] = None,
) -> RolloverResult:
    """Reconcile a normalized batch against the pre-import weekly sets."""

    base_options = {name: list((options or {}).get(name, [])) for name in OPTION_FIELDS}
    unique_in_file = dedupe_within_batch(new_records)
    fresh = drop_existing(unique_in_file, sets)

    internal = len(new_records) - len(unique_in_file)
    if internal:
        LOGGER.debug("Duplicate ids within the file: %s", ", ".join(duplicate_ids(new_records)))
    skipped = len(new_records) - len(fresh)

    if not fresh:
        LOGGER.info("No new records: %d skipped (%d duplicated within the file)", skipped, internal)
        return RolloverResult(
            sets=WeeklySets(current=list(sets.current), last=list(sets.last)),
            skipped_duplicate_count=skipped,
            file_internal_duplicate_count=internal,
            options=base_options,
        )

    demoted = [*sets.current, *sets.last]
    updated_options, appended = extend_option_lists(base_options, fresh)
    LOGGER.info(
        "Rollover: %d new current records, %d demoted to last week, %d skipped",
        len(fresh),
        len(demoted),
        skipped,
    )
    return RolloverResult(
        sets=WeeklySets(current=list(fresh), last=demoted),
        added=list(fresh),
        skipped_duplicate_count=skipped,
        file_internal_duplicate_count=internal,
        options=updated_options,
        new_option_values=appended,
    )
