# -*- coding: utf-8 -*-
"""Loading, indexing and saving of journal entries.

The repository owns every :class:`EntryFile` found in the data directory
and a derived index that is rebuilt from scratch after each save or
delete. Access is single-threaded: callers must serialize their use of
a repository.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Set, Union
import logging
import re

from .datafile import EntryFile
from .errors import JournalError, ParseError
from .models import ENCRYPTED_SUFFIX, Entry, canonical_filename, utc_now
from .security import KeyStore

logger = logging.getLogger(__name__)

FILENAME_RE = re.compile(r"^\d{8}\.ics(\.enc)?$", re.IGNORECASE)


class RepositoryChangeListener(Protocol):
    """Receives notifications after the repository changed on disk."""

    def entry_added(self, entry: Entry) -> None: ...

    def entry_updated(self, entry: Entry) -> None: ...

    def entry_deleted(self, entry: Entry) -> None: ...


@dataclass
class RepositoryIndex:
    """Snapshot of everything derived from the loaded entries."""

    dates: List[date] = field(default_factory=list)
    by_year: Dict[int, List[Entry]] = field(default_factory=dict)
    by_month: Dict[int, Set[int]] = field(default_factory=dict)
    categories: List[str] = field(default_factory=list)

    @classmethod
    def build(cls, entries: List[Entry]) -> "RepositoryIndex":
        seen_dates: Set[date] = set()
        seen_cats: Set[str] = set()
        index = cls()
        for entry in entries:
            day = entry.filing_date
            if day is not None:
                seen_dates.add(day)
                index.by_year.setdefault(day.year, []).append(entry)
                index.by_month.setdefault(day.year, set()).add(day.month)
            for cat in entry.category_list():
                # first casing seen wins
                folded = cat.casefold()
                if folded not in seen_cats:
                    seen_cats.add(folded)
                    index.categories.append(cat)
        index.dates = sorted(seen_dates)
        return index


class Repository:
    """All entry files of one data directory."""

    def __init__(
        self,
        directory: Union[str, Path],
        keystore: Optional[KeyStore] = None,
        strict_parsing: bool = False,
        encrypt_new_files: bool = True,
    ) -> None:
        self.directory = Path(directory)
        self.keystore = keystore
        self.strict_parsing = strict_parsing
        self.encrypt_new_files = encrypt_new_files
        self._files: Dict[str, EntryFile] = {}
        self._listeners: List[RepositoryChangeListener] = []
        self.load_errors: List[JournalError] = []
        self.index = RepositoryIndex()

    @classmethod
    def open(
        cls,
        directory: Union[str, Path],
        keystore: Optional[KeyStore] = None,
        strict_parsing: bool = False,
        encrypt_new_files: bool = True,
    ) -> "Repository":
        """Scan *directory* and load every entry file found there."""
        repo = cls(directory, keystore, strict_parsing, encrypt_new_files)
        repo.scan()
        return repo

    # -----------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------

    def scan(self) -> None:
        """(Re)load all files; per-file failures are logged, not raised."""
        self._files = {}
        self.load_errors = []
        candidates: Dict[str, Path] = {}
        if self.directory.is_dir():
            for path in sorted(self.directory.iterdir()):
                if not path.is_file() or not FILENAME_RE.match(path.name):
                    continue
                key = path.name.lower()
                encrypted = key.endswith(ENCRYPTED_SUFFIX)
                if encrypted:
                    key = key[: -len(ENCRYPTED_SUFFIX)]
                previous = candidates.get(key)
                if previous is not None:
                    if previous.name.lower().endswith(ENCRYPTED_SUFFIX) == encrypted:
                        logger.warning("Ignoring %s; duplicate file name of %s", path, previous)
                        self.load_errors.append(
                            ParseError(f"duplicate file name of {previous.name}", str(path))
                        )
                        continue
                    if not encrypted:
                        logger.warning("Ignoring %s; an encrypted copy exists", path)
                        continue
                    logger.warning("Ignoring %s; an encrypted copy exists", previous)
                candidates[key] = path
        else:
            logger.warning("Data directory %s does not exist", self.directory)

        for key in sorted(candidates):
            path = candidates[key]
            try:
                data_file = EntryFile.load(path, keystore=self.keystore, strict=self.strict_parsing)
            except (OSError, UnicodeDecodeError, JournalError) as exc:
                logger.error("Could not load %s: %s", path, exc)
                self.load_errors.append(ParseError(str(exc), str(path)))
                continue
            self._files[data_file.name] = data_file

        self.rebuild_index()
        logger.info(
            "Loaded %d entries from %d files in %s (%d parse errors)",
            self.entry_count, len(self._files), self.directory, self.parse_error_count,
        )

    def rebuild_index(self) -> RepositoryIndex:
        self.index = RepositoryIndex.build(self.get_all_entries())
        return self.index

    # -----------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------

    @property
    def files(self) -> List[EntryFile]:
        return [self._files[k] for k in sorted(self._files)]

    @property
    def entry_count(self) -> int:
        return sum(f.entry_count for f in self._files.values())

    @property
    def parse_error_count(self) -> int:
        return len(self.load_errors) + sum(f.parse_error_count for f in self._files.values())

    def find_data_file(self, entry: Entry) -> Optional[EntryFile]:
        """The file whose canonical name matches the entry's filing date."""
        if entry.filing_date is None:
            return None
        return self._files.get(canonical_filename(entry.filing_date))

    def get_all_entries(self) -> List[Entry]:
        return [entry for f in self.files for entry in f.entries]

    def get_entries_by_year(self, year: int) -> List[Entry]:
        return list(self.index.by_year.get(year, []))

    def get_entries_by_month(self, year: int, month: int) -> List[Entry]:
        return [e for e in self.index.by_year.get(year, []) if e.start.month == month]

    def get_years(self) -> List[int]:
        """Distinct years with entries, newest first."""
        return sorted(self.index.by_year, reverse=True)

    def get_months_for_year(self, year: int) -> List[int]:
        return sorted(self.index.by_month.get(year, ()))

    def get_categories(self) -> List[str]:
        return list(self.index.categories)

    def get_dates(self) -> List[date]:
        return list(self.index.dates)

    # -----------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------

    def save_journal(self, entry: Entry) -> None:
        """Write *entry* to its file, creating the file when needed.

        Entries that were already stored get their sequence bumped by
        one. If writing fails, the entry's sequence, last-modified time
        and filing are restored before the error propagates.
        """
        data_file = self._backing_file(entry)
        is_update = data_file is not None
        created = False
        old_sequence, old_modified = entry.sequence, entry.last_modified

        if data_file is None:
            if entry.filing_date is None:
                raise ValueError("Cannot file an entry without a start date")
            data_file = self.find_data_file(entry)
            if data_file is None:
                created = True
                data_file = EntryFile(
                    self.directory / canonical_filename(entry.filing_date),
                    keystore=self.keystore,
                    encrypted=self._encrypt_new(),
                    strict=self.strict_parsing,
                )
            data_file.add_entry(entry)
        else:
            entry.sequence += 1
        entry.last_modified = utc_now()

        try:
            if created:
                self.directory.mkdir(parents=True, exist_ok=True)
            data_file.write()
        except Exception:
            entry.sequence, entry.last_modified = old_sequence, old_modified
            if not is_update:
                data_file.remove_entry(entry)
                entry.file_key = None
            raise

        if created:
            self._files[data_file.name] = data_file
        self.rebuild_index()
        logger.info("Saved %s to %s", entry.uid, data_file.disk_path)
        self._notify("entry_updated" if is_update else "entry_added", entry)

    def delete_journal(self, entry: Entry) -> bool:
        """Remove *entry* from its file; False if it is not stored anywhere.

        The file is rewritten even when it ends up empty.
        """
        data_file = self._backing_file(entry)
        if data_file is None:
            logger.debug("Delete of unsaved entry %s ignored", entry.uid)
            return False
        position = data_file.index_of(entry)
        data_file.remove_entry(entry)
        try:
            data_file.write()
        except Exception:
            data_file.add_entry(entry, index=position)
            raise
        entry.file_key = None
        self.rebuild_index()
        logger.info("Deleted %s from %s", entry.uid, data_file.disk_path)
        self._notify("entry_deleted", entry)
        return True

    # -----------------------------------------------------------------
    # Listeners
    # -----------------------------------------------------------------

    def add_change_listener(self, listener: RepositoryChangeListener) -> None:
        self._listeners.append(listener)

    def remove_change_listener(self, listener: RepositoryChangeListener) -> None:
        self._listeners.remove(listener)

    def _notify(self, event: str, entry: Entry) -> None:
        for listener in list(self._listeners):
            getattr(listener, event)(entry)

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _backing_file(self, entry: Entry) -> Optional[EntryFile]:
        if entry.file_key is None:
            return None
        data_file = self._files.get(entry.file_key)
        if data_file is None or data_file.index_of(entry) is None:
            return None
        return data_file

    def _encrypt_new(self) -> bool:
        return self.encrypt_new_files and self.keystore is not None and self.keystore.is_unlocked
