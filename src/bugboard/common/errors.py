"""Exception hierarchy for bugboard.

Ingestion catches :class:`BugboardError` at the pipeline boundary and turns it
into a single user-facing message; the other operations let these propagate.
"""
from __future__ import annotations


class BugboardError(Exception):
    """Base class for all bugboard errors."""


class DecodeError(BugboardError):
    """The uploaded bytes could not be decoded as a spreadsheet."""


# Name used by the reader contract.
ParseError = DecodeError


class RowValidationError(BugboardError):
    """A row lacks both an incident identifier and a description."""


class StorageError(BugboardError):
    """Reading or writing a persisted key failed."""


class AttachmentError(BugboardError):
    """An attachment was rejected (type not allowed or too large)."""


class RecordNotFoundError(BugboardError):
    """No record with the given incident identifier exists in either weekly set."""


class NothingToExportError(BugboardError):
    """Neither weekly set holds an open record."""


class ConfigError(BugboardError):
    """The configuration file is missing or invalid."""
