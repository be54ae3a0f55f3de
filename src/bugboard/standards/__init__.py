"""Shared field standards for bugboard stages."""

from .fields import (
    BUG_FIELDS,
    DEFAULT_OPTIONS,
    EXPORT_FIELDS,
    OPTION_FIELDS,
    SPREADSHEET_FIELDS,
    UNASSIGNED_OWNER,
    option_storage_key,
)

__all__ = [
    "BUG_FIELDS",
    "DEFAULT_OPTIONS",
    "EXPORT_FIELDS",
    "OPTION_FIELDS",
    "SPREADSHEET_FIELDS",
    "UNASSIGNED_OWNER",
    "option_storage_key",
]
