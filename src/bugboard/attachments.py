"""Attachment validation and encoding for defect records.

Payloads are stored as base64 ``data:`` URLs inside the record's
``attachments_<incidentId>`` document.
"""
from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .common.config_validator import AttachmentsConfig
from .common.errors import AttachmentError
from .models import Attachment


LOGGER = logging.getLogger("bugboard.attachments")


@dataclass
class AttachmentUpload:
    """A file handed in by the caller before validation."""

    name: str
    payload: bytes
    mime_type: Optional[str] = None

    def resolved_type(self) -> str:
        if self.mime_type:
            return self.mime_type
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or "application/octet-stream"


def encode_data_url(payload: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


def decode_payload(attachment: Attachment) -> bytes:
    """Return the raw bytes of a stored attachment."""
    data = attachment.data
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (ValueError, TypeError) as exc:
        raise AttachmentError(f"Attachment {attachment.name!r} has a corrupt payload: {exc}") from exc


def validate_upload(upload: AttachmentUpload, config: AttachmentsConfig) -> str:
    """Return the upload's MIME type or raise AttachmentError."""
    mime = upload.resolved_type()
    if mime not in config.allowed_types:
        raise AttachmentError(f"File type not supported: {upload.name}")
    if len(upload.payload) > config.max_bytes:
        limit_mb = config.max_bytes / (1024 * 1024)
        raise AttachmentError(f"File too large: {upload.name} (max {limit_mb:g}MB)")
    return mime


def _next_id(base: int, taken: set[int]) -> int:
    candidate = base
    while candidate in taken:
        candidate += 1
    taken.add(candidate)
    return candidate


def add_attachments(
    existing: Sequence[Attachment],
    uploads: Iterable[AttachmentUpload],
    now: datetime,
    config: AttachmentsConfig,
) -> Tuple[List[Attachment], List[str]]:
    """Validate and append uploads.

    Rejected files do not stop the batch; their messages are returned alongside
    the updated list.
    """
    taken = {a.id for a in existing}
    base = int(now.timestamp() * 1000)
    accepted: List[Attachment] = []
    rejected: List[str] = []
    for i, upload in enumerate(uploads):
        try:
            mime = validate_upload(upload, config)
        except AttachmentError as exc:
            LOGGER.warning("Attachment rejected: %s", exc)
            rejected.append(str(exc))
            continue
        accepted.append(
            Attachment(
                id=_next_id(base + i, taken),
                name=upload.name,
                type=mime,
                size=len(upload.payload),
                upload_date=now.isoformat(),
                data=encode_data_url(upload.payload, mime),
            )
        )
    return [*existing, *accepted], rejected


def rename_attachment(existing: Sequence[Attachment], attachment_id: int, new_name: str) -> List[Attachment]:
    """Rename one attachment; blank names leave the list unchanged."""
    name = (new_name or "").strip()
    if not name:
        return list(existing)
    if not any(a.id == attachment_id for a in existing):
        raise AttachmentError(f"No attachment with id {attachment_id}")
    return [replace(a, name=name) if a.id == attachment_id else a for a in existing]


def remove_attachment(existing: Sequence[Attachment], attachment_id: int) -> List[Attachment]:
    return [a for a in existing if a.id != attachment_id]
