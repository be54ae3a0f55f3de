"""Command line entry point for bugboard.

Commands:
  ingest FILE          upload a weekly spreadsheet (rollover when it has new bugs)
  export [--output]    write the open-defect summary workbook
  summary [--owner]    print per-owner counts (or one owner's bugs) for both weekly sets
  delete ID            remove a bug and its attachments
  clear                drop both weekly sets
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .bug_service import BugTracker
from .common.config_validator import BugboardConfig, load_config
from .common.errors import BugboardError
from .dashboard_utils import owner_breakdown
from .export_utils import write_open_summary
from .logging_utils import get_logger, get_user_logger, log_system_event
from .store import JsonDirectoryStore


LOGGER_NAME = "bugboard.pipeline"


def build_tracker(config: BugboardConfig) -> BugTracker:
    logger = get_logger(LOGGER_NAME, config)
    user_logger = get_user_logger(config)
    store = JsonDirectoryStore(config.paths.store_dir)
    log_system_event(logger, f"Store opened at {store.root}")
    return BugTracker(store=store, config=config, logger=logger, user_logger=user_logger)


def _cmd_ingest(tracker: BugTracker, args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.exists():
        tracker.user_logger.info(f"Input not found: {path}")
        return 1
    result = tracker.ingest(path.read_bytes(), filename=path.name)
    return 0 if result.success else 1


def _cmd_export(tracker: BugTracker, args: argparse.Namespace) -> int:
    target = Path(args.output) if args.output else Path(tracker.config.paths.export_dir)
    out = write_open_summary(tracker.load_weekly_sets(), target, tracker.config.export)
    tracker.user_logger.info(f"Weekly bugs summary written to {out}")
    return 0


def _cmd_summary(tracker: BugTracker, args: argparse.Namespace) -> int:
    if args.owner:
        for title, week in (("Current week", "current"), ("Last week", "last")):
            records = tracker.owner_records(args.owner, week)
            print(f"{title}: {len(records)} bugs owned by {args.owner}")
            for r in records:
                print(f"  {r.incident_id}  {r.corrective_status or '-'}  {r.description}")
        return 0
    sets = tracker.load_weekly_sets()
    lines: List[str] = []
    for title, records in (("Current week", sets.current), ("Last week", sets.last)):
        lines.append(f"{title}: {len(records)} bugs")
        for owner, count, percent in owner_breakdown(records).itertuples(index=False, name=None):
            lines.append(f"  {owner} = {count} ({percent:.1f}%)")
    print("\n".join(lines))
    return 0


def _cmd_delete(tracker: BugTracker, args: argparse.Namespace) -> int:
    if tracker.delete_record(args.incident_id):
        tracker.user_logger.info(f"Bug {args.incident_id} has been deleted successfully")
        return 0
    tracker.user_logger.info(f"No bug with id {args.incident_id}")
    return 1


def _cmd_clear(tracker: BugTracker, args: argparse.Namespace) -> int:
    tracker.clear_all()
    return 0


def build_arg_parser() -> argparse.ArgumentParser:
    """Create an argument parser for the bugboard CLI."""

    parser = argparse.ArgumentParser(description="Weekly bug spreadsheet ingestion and summaries")
    parser.add_argument("--config", default=None, help="Path to configuration file (defaults apply when omitted)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_ingest = sub.add_parser("ingest", help="Upload a weekly bug spreadsheet")
    p_ingest.add_argument("file", help="Path to an .xlsx, .xls or .csv file")
    p_ingest.set_defaults(handler=_cmd_ingest)

    p_export = sub.add_parser("export", help="Write the open bugs summary workbook")
    p_export.add_argument("--output", help="Target .xlsx file or directory")
    p_export.set_defaults(handler=_cmd_export)

    p_summary = sub.add_parser("summary", help="Print per-owner counts")
    p_summary.add_argument("--owner", help="List the bugs of one owner instead of the counts")
    p_summary.set_defaults(handler=_cmd_summary)

    p_delete = sub.add_parser("delete", help="Delete one bug and its attachments")
    p_delete.add_argument("incident_id")
    p_delete.set_defaults(handler=_cmd_delete)

    p_clear = sub.add_parser("clear", help="Clear both weekly sets")
    p_clear.set_defaults(handler=_cmd_clear)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""

    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        config = load_config(args.config)
        tracker = build_tracker(config)
        return args.handler(tracker, args)
    except BugboardError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":  # pragma: no cover - CLI guard
    sys.exit(main())
