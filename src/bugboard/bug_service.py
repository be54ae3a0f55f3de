"""Service facade over the ingestion pipeline and the persisted weekly sets.

Ingestion runs Reader -> Mapper -> Normalizer -> Reconciler and only then
writes to the store. Edits (upsert, comment post, attachment changes, delete)
go straight to the store and always refresh the record's last-updated stamp.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from .attachments import AttachmentUpload, add_attachments, decode_payload, remove_attachment, rename_attachment
from .common.config_validator import BugboardConfig
from .common.errors import AttachmentError, BugboardError, RecordNotFoundError, RowValidationError
from .dashboard_utils import records_for_owner, search_records, sort_by_reported
from .export_utils import export_open_summary
from .ingestion_utils import NormalizationResult, map_columns, normalize_rows, read_spreadsheet
from .logging_utils import end_stage_timer, log_error, log_warning, start_stage_timer
from .models import Attachment, Comment, DefectRecord, WeeklySets, format_timestamp
from .rollover import RolloverResult, reconcile
from .store import BugRepository, InMemoryStore, KeyValueStore
from .standards.fields import OPTION_FIELDS


LOGGER_NAME = "bugboard.service"


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'' if n == 1 else 's'}"


@dataclass
class IngestResult:
    """What one upload did, plus the message shown to the user."""

    success: bool
    added_count: int = 0
    skipped_duplicate_count: int = 0
    file_internal_duplicate_count: int = 0
    invalid_row_count: int = 0
    message: str = ""
    timings_ms: Dict[str, float] = field(default_factory=dict)

    @property
    def rolled_over(self) -> bool:
        return self.success and self.added_count > 0


def summarize_ingest(rollover: RolloverResult, elapsed_ms: Optional[float] = None) -> str:
    """Human-readable outcome of a reconciliation."""
    skipped = rollover.skipped_duplicate_count
    internal = rollover.file_internal_duplicate_count
    if not rollover.added:
        if skipped > 0:
            return f"No new bugs found. Skipped {_plural(skipped, 'duplicate')}."
        if internal > 0:
            return f"No new bugs found. File had {_plural(internal, 'duplicate')}."
        return "No bugs found in the uploaded file."
    message = f"Successfully uploaded {rollover.added_count} new bugs!"
    if skipped > 0:
        message += f" Skipped {skipped} existing {'duplicate' if skipped == 1 else 'duplicates'}."
    if internal > 0:
        message += f" File had {internal} internal {'duplicate' if internal == 1 else 'duplicates'}."
    if elapsed_ms is not None:
        message += f" Processed in {round(elapsed_ms)}ms."
    return message


class BugTracker:
    """Entry point for callers (CLI, UI layer, tests).

    ``store`` and ``clock`` are injectable; by default state lives in memory and
    time comes from :func:`datetime.now`.
    """

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        config: Optional[BugboardConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        logger: Optional[logging.Logger] = None,
        user_logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or BugboardConfig()
        self.repo = BugRepository(store if store is not None else InMemoryStore(), self.config.options.as_dict())
        self.clock = clock or datetime.now
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.user_logger = user_logger or logging.getLogger("bugboard.user")

    def _stamp(self) -> str:
        return format_timestamp(self.clock())

    # -- queries -------------------------------------------------------------

    def load_weekly_sets(self) -> WeeklySets:
        return self.repo.load_weekly_sets()

    def get_record(self, incident_id: str) -> DefectRecord:
        record = self.load_weekly_sets().find(incident_id)
        if record is None:
            raise RecordNotFoundError(f"No bug with id {incident_id}")
        return record

    def get_options(self, name: Optional[str] = None) -> Any:
        if name is None:
            return self.repo.load_all_options()
        return self.repo.load_options(name)

    def _pool(self, week: str) -> List[DefectRecord]:
        sets = self.load_weekly_sets()
        return {"current": sets.current, "last": sets.last, "all": sets.all_records()}[week]

    def list_records(self, week: str = "current", query: str = "", owner: Optional[str] = None) -> List[DefectRecord]:
        """Records of one weekly set (or ``"all"``) matching ``query``, newest reported first."""
        hits = search_records(self._pool(week), query, owner)
        return sort_by_reported(hits, self.config.ingestion.comment_date_format, self.clock())

    def owner_records(self, owner: str, week: str = "current") -> List[DefectRecord]:
        """Drill-down for one owner slice of the breakdown (exact name, any case)."""
        return records_for_owner(self._pool(week), owner)

    # -- ingestion -----------------------------------------------------------

    def _ingest_grid(self, grid: List[List[Any]], timings: Dict[str, float]) -> IngestResult:
        t = start_stage_timer("map")
        column_map = map_columns(grid[0] if grid else [], self.config.ingestion.resolved_keywords())
        end_stage_timer("map", t, timings, self.logger)

        t = start_stage_timer("normalize")
        normalized: NormalizationResult = normalize_rows(grid[1:], column_map, self.clock(), self.logger)
        end_stage_timer("normalize", t, timings, self.logger)

        t = start_stage_timer("reconcile")
        before = self.repo.load_weekly_sets()
        rollover = reconcile(normalized.records, before, self.repo.load_all_options())
        end_stage_timer("reconcile", t, timings, self.logger)

        if rollover.rolled_over:
            t = start_stage_timer("persist")
            self.repo.save_weekly_sets(rollover.sets)
            for name in rollover.new_option_values:
                self.repo.save_options(name, rollover.options[name])
            end_stage_timer("persist", t, timings, self.logger)

        return IngestResult(
            success=True,
            added_count=rollover.added_count,
            skipped_duplicate_count=rollover.skipped_duplicate_count,
            file_internal_duplicate_count=rollover.file_internal_duplicate_count,
            invalid_row_count=normalized.dropped_rows,
            message=summarize_ingest(rollover, sum(timings.values())),
            timings_ms=timings,
        )

    def _failed(self, exc: BugboardError, timings: Dict[str, float]) -> IngestResult:
        log_error(self.logger, f"Spreadsheet ingestion failed: {exc}")
        message = "Failed to process Excel file"
        self.user_logger.info(message)
        return IngestResult(success=False, message=f"{message}: {exc}", timings_ms=timings)

    def ingest(self, data: bytes, filename: Optional[str] = None) -> IngestResult:
        """Decode, normalize and reconcile one uploaded spreadsheet.

        Errors never escape: decode and storage failures come back as an
        unsuccessful result with a single message, with no state mutated by a
        decode failure.
        """
        timings: Dict[str, float] = {}
        try:
            t = start_stage_timer("read")
            grid = read_spreadsheet(data, filename)
            end_stage_timer("read", t, timings, self.logger)
            result = self._ingest_grid(grid, timings)
        except BugboardError as exc:
            return self._failed(exc, timings)
        self.user_logger.info(result.message)
        return result

    async def ingest_async(self, data: bytes, filename: Optional[str] = None) -> IngestResult:
        """Like :meth:`ingest`, with the blocking decode awaited in a worker thread."""
        timings: Dict[str, float] = {}
        try:
            t = start_stage_timer("read")
            grid = await asyncio.to_thread(read_spreadsheet, data, filename)
            end_stage_timer("read", t, timings, self.logger)
            result = self._ingest_grid(grid, timings)
        except BugboardError as exc:
            return self._failed(exc, timings)
        self.user_logger.info(result.message)
        return result

    # -- export --------------------------------------------------------------

    def export_open_summary(self) -> bytes:
        return export_open_summary(self.load_weekly_sets(), self.config.export)

    # -- record edits --------------------------------------------------------

    def _replace(self, sets: WeeklySets, updated: DefectRecord) -> None:
        """Write ``updated`` into whichever set holds it, else prepend to current."""
        where = sets.locate(updated.incident_id)
        if where == "last":
            sets.last = [updated if r.incident_id == updated.incident_id else r for r in sets.last]
            self.repo.save_last(sets.last)
        elif where == "current":
            sets.current = [updated if r.incident_id == updated.incident_id else r for r in sets.current]
            self.repo.save_current(sets.current)
        else:
            sets.current = [updated, *sets.current]
            self.repo.save_current(sets.current)

    def upsert_record(self, record: DefectRecord) -> DefectRecord:
        """Save a record in place (or add it to the current week) with a fresh timestamp."""
        if not record.incident_id:
            raise RowValidationError("Cannot save a bug without an incident id")
        updated = record.touched(self._stamp())
        self._replace(self.load_weekly_sets(), updated)
        self.logger.info("Saved bug %s", updated.incident_id)
        return updated

    def post_comment(self, incident_id: str, text: str) -> DefectRecord:
        """Prepend a comment stamped with the current time; blank text is ignored."""
        record = self.get_record(incident_id)
        body = (text or "").strip()
        if not body:
            return record
        stamp = self._stamp()
        updated = record.touched(stamp, comments=[Comment(text=body, time=stamp), *record.comments])
        self._replace(self.load_weekly_sets(), updated)
        return updated

    def delete_record(self, incident_id: str) -> bool:
        """Remove a record from whichever set holds it, with its attachments."""
        sets = self.load_weekly_sets()
        where = sets.locate(incident_id)
        if where is None:
            self.logger.info("Delete ignored: no bug with id %s", incident_id)
            return False
        if where == "current":
            self.repo.save_current([r for r in sets.current if r.incident_id != incident_id])
        else:
            self.repo.save_last([r for r in sets.last if r.incident_id != incident_id])
        self.repo.delete_attachments(incident_id)
        self.logger.info("Deleted bug %s", incident_id)
        return True

    def clear_all(self) -> None:
        """Drop both weekly sets (attachments and option lists are kept)."""
        self.repo.clear_weekly_sets()
        self.user_logger.info("All bugs cleared. Ready for fresh upload!")

    # -- attachments ---------------------------------------------------------

    def _touch(self, incident_id: str) -> None:
        record = self.get_record(incident_id)
        self._replace(self.load_weekly_sets(), record.touched(self._stamp()))

    def list_attachments(self, incident_id: str) -> List[Attachment]:
        return self.repo.load_attachments(incident_id)

    def add_attachments(self, incident_id: str, uploads: Iterable[AttachmentUpload]) -> tuple[List[Attachment], List[str]]:
        """Validate and store uploads; returns (all attachments, rejection messages)."""
        self.get_record(incident_id)
        existing = self.repo.load_attachments(incident_id)
        updated, rejected = add_attachments(existing, uploads, self.clock(), self.config.attachments)
        for message in rejected:
            log_warning(self.logger, f"{incident_id}: {message}")
        if len(updated) != len(existing):
            self.repo.save_attachments(incident_id, updated)
            self._touch(incident_id)
        return updated, rejected

    def download_attachment(self, incident_id: str, attachment_id: int) -> tuple[str, bytes]:
        """Return (file name, raw bytes) of one stored attachment."""
        for attachment in self.repo.load_attachments(incident_id):
            if attachment.id == attachment_id:
                return attachment.name, decode_payload(attachment)
        raise AttachmentError(f"No attachment with id {attachment_id}")

    def rename_attachment(self, incident_id: str, attachment_id: int, new_name: str) -> List[Attachment]:
        existing = self.repo.load_attachments(incident_id)
        updated = rename_attachment(existing, attachment_id, new_name)
        if updated != existing:
            self.repo.save_attachments(incident_id, updated)
            self._touch(incident_id)
        return updated

    def delete_attachment(self, incident_id: str, attachment_id: int) -> List[Attachment]:
        existing = self.repo.load_attachments(incident_id)
        updated = remove_attachment(existing, attachment_id)
        if len(updated) != len(existing):
            self.repo.save_attachments(incident_id, updated)
            self._touch(incident_id)
        return updated

    # -- option lists --------------------------------------------------------

    def add_option(self, name: str, value: str) -> List[str]:
        if name not in OPTION_FIELDS:
            raise KeyError(f"Not an option field: {name}")
        current = self.repo.load_options(name)
        value = (value or "").strip()
        if value and value not in current:
            current.append(value)
            self.repo.save_options(name, current)
        return current

    def remove_option(self, name: str, value: str) -> List[str]:
        if name not in OPTION_FIELDS:
            raise KeyError(f"Not an option field: {name}")
        remaining = [v for v in self.repo.load_options(name) if v != value]
        self.repo.save_options(name, remaining)
        return self.repo.load_options(name)
