"""Bugboard: weekly defect spreadsheet ingestion, rollover and Excel summaries."""

from .bug_service import BugTracker, IngestResult
from .models import Attachment, Comment, DefectRecord, WeeklySets
from .store import InMemoryStore, JsonDirectoryStore

__all__ = [
    "Attachment",
    "BugTracker",
    "Comment",
    "DefectRecord",
    "IngestResult",
    "InMemoryStore",
    "JsonDirectoryStore",
    "WeeklySets",
]

__version__ = "0.3.0"
