# -*- coding: utf-8 -*-
"""Application logic that composes the repository and security layers.

This module provides the public API used by the CLI. All side effects
(file and key store I/O) go through :class:`Repository` and
:class:`KeyStore`.
"""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union
import logging
import re

from . import codec
from .errors import InvalidPassphrase
from .fileio import atomic_write_text
from .models import Attachment, Entry, generate_uid, utc_now
from .repository import Repository
from .security import KeyStore, KeyStoreState

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------
# Key store start-up
# ---------------------------------------------------------------------

def open_keystore(directory: Union[str, Path], prompt: Callable[[], Optional[str]]) -> KeyStore:
    """Return an unlocked key store for *directory*.

    First run initializes the store. A store still using the default
    passphrase unlocks silently; otherwise *prompt* is called until it
    returns the right passphrase. A ``None`` answer aborts with
    InvalidPassphrase.
    """
    keystore = KeyStore(directory)
    if keystore.state is KeyStoreState.UNINITIALIZED:
        keystore.initialize()
        return keystore
    if keystore.unlock_with_default():
        return keystore
    while True:
        candidate = prompt()
        if candidate is None:
            raise InvalidPassphrase("No passphrase given")
        try:
            keystore.unlock(candidate)
        except InvalidPassphrase:
            logger.warning("Invalid passphrase")
            continue
        return keystore


def change_passphrase(keystore: KeyStore, current: str, new: str) -> None:
    """Check *current* against the store, then switch to *new*."""
    if not current:
        raise ValueError("Current passphrase required")
    if not new:
        raise ValueError("New passphrase required")
    keystore.unlock(current)
    keystore.change_passphrase(new)


# ---------------------------------------------------------------------
# Entries
# ---------------------------------------------------------------------

def new_entry(
    summary: str = "",
    description: str = "",
    categories: str = "",
    start: Optional[datetime] = None,
    attachments: Optional[List[Attachment]] = None,
) -> Entry:
    """Build an unsaved entry with a fresh UID."""
    now = datetime.now().replace(microsecond=0)
    return Entry(
        uid=generate_uid(now),
        start=start or now,
        summary=summary.strip(),
        description=description,
        categories=categories.strip(),
        created=utc_now(),
        attachments=list(attachments or []),
    )


def add_entry(repo: Repository, summary: str, description: str,
              categories: str = "", start: Optional[datetime] = None) -> Entry:
    """Create and save a new entry; return it."""
    entry = new_entry(summary, description, categories, start)
    repo.save_journal(entry)
    return entry


def update_entry(repo: Repository, entry: Entry, *,
                 summary: Optional[str] = None,
                 description: Optional[str] = None,
                 categories: Optional[str] = None,
                 attachments: Optional[List[Attachment]] = None) -> None:
    if summary is not None:
        entry.summary = summary.strip()
    if description is not None:
        entry.description = description
    if categories is not None:
        entry.categories = categories.strip()
    if attachments is not None:
        entry.attachments = list(attachments)
    repo.save_journal(entry)


def delete_entry(repo: Repository, entry: Entry) -> bool:
    return repo.delete_journal(entry)


def list_entries(repo: Repository, year: Optional[int] = None,
                 month: Optional[int] = None, query: Optional[str] = None) -> List[Entry]:
    """Entries for a year (and month), filtered by *query*, newest first."""
    if year is None:
        entries = repo.get_all_entries()
    elif month is None:
        entries = repo.get_entries_by_year(year)
    else:
        entries = repo.get_entries_by_month(year, month)
    return sort_entries(search_entries(entries, query))


def search_entries(entries: Sequence[Entry], query: Optional[str]) -> List[Entry]:
    """Case-insensitive literal match on summary, categories and description."""
    if query is None or not query.strip():
        return list(entries)
    pattern = re.compile(re.escape(query.strip()), re.IGNORECASE)
    return [
        e for e in entries
        if pattern.search(e.summary) or pattern.search(e.categories) or pattern.search(e.description)
    ]


def sort_entries(entries: Iterable[Entry]) -> List[Entry]:
    """Newest first; entries without a start date go last."""
    entries = list(entries)
    dated = [e for e in entries if e.start is not None]
    undated = [e for e in entries if e.start is None]
    # aware and floating start times are compared by wall-clock time
    return sorted(dated, key=lambda e: e.start.replace(tzinfo=None), reverse=True) + undated


# ---------------------------------------------------------------------
# Export / migration
# ---------------------------------------------------------------------

def export_entries(entries: Sequence[Entry], path: Union[str, Path]) -> Path:
    """Write *entries* to a plaintext .ics file; return the path used."""
    path = Path(path)
    if not path.suffix:
        path = path.with_name(path.name + ".ics")
    atomic_write_text(path, codec.serialize(list(entries)))
    logger.info("Exported %d entries to %s", len(entries), path)
    return path


def encrypt_existing_files(repo: Repository) -> int:
    """Move every plaintext entry file to encrypted storage.

    Requires the repository's key store to be unlocked. Returns the
    number of files converted.
    """
    converted = 0
    for data_file in repo.files:
        if data_file.encrypt(repo.keystore):
            converted += 1
    return converted
