# -*- coding: utf-8 -*-
"""One calendar file on disk and the entries parsed from it.

Normally a file holds a single entry, but files copied in from elsewhere
may hold several; all of them are kept and written back. Components
other than VJOURNAL are preserved as well.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Union
import logging

from icalendar.cal import Component

from . import codec
from .errors import NotUnlocked, ParseError
from .fileio import atomic_write_text
from .models import ENCRYPTED_SUFFIX, Entry
from .security import KeyStore

logger = logging.getLogger(__name__)


class EntryFile:
    """A ``YYYYMMDD.ics`` file (``YYYYMMDD.ics.enc`` when encrypted)."""

    def __init__(
        self,
        path: Union[str, Path],
        keystore: Optional[KeyStore] = None,
        encrypted: bool = False,
        strict: bool = False,
    ) -> None:
        path = Path(path)
        # encrypted name exactly as found on disk, suffix case included
        self._encrypted_name: Optional[str] = None
        if path.name.lower().endswith(ENCRYPTED_SUFFIX):
            self._encrypted_name = path.name
            path = path.with_name(path.name[: -len(ENCRYPTED_SUFFIX)])
            encrypted = True
        self.path = path
        self.keystore = keystore
        self.encrypted = encrypted
        self.strict = strict
        self.entries: List[Entry] = []
        self.others: List[Component] = []
        self.errors: List[ParseError] = []

    @classmethod
    def load(
        cls,
        path: Union[str, Path],
        keystore: Optional[KeyStore] = None,
        encrypted: bool = False,
        strict: bool = False,
    ) -> "EntryFile":
        """Parse *path* if it exists; otherwise return an empty file.

        Raises OSError if the file cannot be read and DecryptionError if
        an encrypted file cannot be decrypted. Parse errors are collected
        in ``errors``.
        """
        data_file = cls(path, keystore=keystore, encrypted=encrypted, strict=strict)
        if data_file.disk_path.exists():
            data_file._read()
        return data_file

    def __repr__(self) -> str:
        return f"EntryFile({str(self.disk_path)!r}, entries={len(self.entries)})"

    @property
    def name(self) -> str:
        """Lookup key: the lowercased plain filename, e.g. ``20240315.ics``."""
        return self.path.name.lower()

    @property
    def disk_path(self) -> Path:
        if self.encrypted:
            return self.path.with_name(self._encrypted_name or self.path.name + ENCRYPTED_SUFFIX)
        return self.path

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def parse_error_count(self) -> int:
        return len(self.errors)

    # -----------------------------------------------------------------
    # Entries
    # -----------------------------------------------------------------

    def add_entry(self, entry: Entry, index: Optional[int] = None) -> None:
        """Attach *entry* to this file; nothing is written yet."""
        if index is None:
            self.entries.append(entry)
        else:
            self.entries.insert(index, entry)
        entry.file_key = self.name

    def index_of(self, entry: Entry) -> Optional[int]:
        for i, candidate in enumerate(self.entries):
            if candidate is entry:
                return i
        return None

    def remove_entry(self, entry: Entry) -> bool:
        """Remove *entry* (by identity); return whether it was present."""
        i = self.index_of(entry)
        if i is None:
            return False
        del self.entries[i]
        return True

    # -----------------------------------------------------------------
    # I/O
    # -----------------------------------------------------------------

    def write(self) -> None:
        """Rewrite the whole file from the in-memory entry list."""
        text = codec.serialize(self.entries, self.others)
        if self.encrypted:
            text = self._require_keystore().encrypt_text(text)
        atomic_write_text(self.disk_path, text)
        logger.debug("Wrote %d entries to %s", len(self.entries), self.disk_path)

    def encrypt(self, keystore: KeyStore) -> bool:
        """Move a plaintext file to encrypted storage.

        Returns False if the file was already encrypted.
        """
        if self.encrypted:
            return False
        plain_path = self.disk_path
        previous = self.keystore
        self.keystore = keystore
        self.encrypted = True
        try:
            self.write()
        except Exception:
            self.keystore = previous
            self.encrypted = False
            raise
        if plain_path.exists():
            plain_path.unlink()
        logger.info("Encrypted %s", plain_path)
        return True

    def _read(self) -> None:
        text = self.disk_path.read_text(encoding="utf-8")
        if self.encrypted:
            text = self._require_keystore().decrypt_text(text)
        result = codec.parse_calendar(text, strict=self.strict, source=str(self.disk_path))
        self.entries = result.entries
        self.others = result.others
        self.errors = result.errors
        for entry in self.entries:
            entry.file_key = self.name
        for err in self.errors:
            logger.warning("Parse error: %s", err)

    def _require_keystore(self) -> KeyStore:
        if self.keystore is None:
            raise NotUnlocked(f"{self.disk_path} is encrypted but no key store was given")
        return self.keystore
