# -*- coding: utf-8 -*-
"""In-memory journal records.

An :class:`Entry` carries the ``file_key`` of the file it is stored in
(its canonical filename) instead of a reference to the file object; the
repository resolves the key through its file map when saving or deleting.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional
import uuid

UID_PREFIX = "icsjournal"
UID_DOMAIN = "icsjournal"
FILE_SUFFIX = ".ics"
ENCRYPTED_SUFFIX = ".enc"


@dataclass
class Attachment:
    """A binary blob attached to an entry."""

    filename: str
    mime_type: str = "application/octet-stream"
    data: bytes = b""


@dataclass
class Entry:
    """One diary record (a VJOURNAL component)."""

    uid: str
    start: Optional[datetime] = None
    summary: str = ""
    description: str = ""
    categories: str = ""
    sequence: int = 0
    last_modified: Optional[datetime] = None
    created: Optional[datetime] = None
    attachments: List[Attachment] = field(default_factory=list)
    file_key: Optional[str] = field(default=None, compare=False, repr=False)

    def category_list(self) -> List[str]:
        """Split the comma-separated categories; blanks are dropped."""
        return split_categories(self.categories)

    @property
    def filing_date(self) -> Optional[date]:
        if self.start is None:
            return None
        return self.start.date()


def split_categories(value: str) -> List[str]:
    return [c.strip() for c in (value or "").split(",") if c.strip()]


def generate_uid(now: Optional[datetime] = None) -> str:
    """Return a UID suitable for a VJOURNAL entry."""
    now = now or datetime.now()
    return f"{UID_PREFIX}-{now:%Y%m%d-%H%M%S}-{uuid.uuid4()}@{UID_DOMAIN}"


def utc_now() -> datetime:
    """Current UTC time truncated to whole seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def canonical_filename(day: date) -> str:
    """Map a filing date to its file name, e.g. ``20240315.ics``."""
    return f"{day.year:04d}{day.month:02d}{day.day:02d}{FILE_SUFFIX}"
