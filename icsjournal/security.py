# -*- coding: utf-8 -*-
"""Two-tier passphrase / system-key scheme.

A system-generated key encrypts all data files. That key is stored in
``security.dat`` encrypted under the user's passphrase, and an argon2
digest of the passphrase is kept in ``userpassword.dat``. Changing the
passphrase only rewrites those two files; data files are never
re-encrypted.

A KeyStore is an ordinary object owned by the caller and passed to the
repository; there is no process-wide instance.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional, Union
import logging

from . import crypto
from .errors import DecryptionError, InvalidPassphrase, KeyStoreStateError, NotUnlocked
from .fileio import atomic_write_text

logger = logging.getLogger(__name__)

SYSTEM_KEY_FILENAME = "security.dat"
DIGEST_FILENAME = "userpassword.dat"

# Used until the user chooses a passphrase of their own.
DEFAULT_PASSPHRASE = "No user-supplied password yet"


class KeyStoreState(Enum):
    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class KeyStore:
    """Holds the passphrase-wrapped system key for one data directory."""

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)
        self.system_key_path = self.directory / SYSTEM_KEY_FILENAME
        self.digest_path = self.directory / DIGEST_FILENAME
        self._passphrase: Optional[str] = None
        self._keys: Optional[crypto.SessionKeys] = None

    # -----------------------------------------------------------------
    # State
    # -----------------------------------------------------------------

    @property
    def state(self) -> KeyStoreState:
        if self._keys is not None:
            return KeyStoreState.UNLOCKED
        if self.system_key_path.exists():
            return KeyStoreState.LOCKED
        return KeyStoreState.UNINITIALIZED

    @property
    def is_unlocked(self) -> bool:
        return self.state is KeyStoreState.UNLOCKED

    def is_default_passphrase(self) -> bool:
        """True while the sentinel passphrase is still in use."""
        return self._passphrase == DEFAULT_PASSPHRASE

    # -----------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------

    def initialize(self) -> None:
        """Create the system key and store it under the default passphrase."""
        if self.state is not KeyStoreState.UNINITIALIZED:
            raise KeyStoreStateError(f"Key store in {self.directory} is already initialized")
        system_key = crypto.generate_system_key()
        self.directory.mkdir(parents=True, exist_ok=True)
        self._persist(DEFAULT_PASSPHRASE, system_key)
        self._passphrase = DEFAULT_PASSPHRASE
        self._keys = crypto.SessionKeys.from_system_key(system_key)
        logger.info("Initialized key store in %s", self.directory)

    def unlock(self, candidate: str) -> None:
        """Verify *candidate* and load the system key.

        Raises InvalidPassphrase on mismatch; the store keeps its state.
        """
        if self.state is KeyStoreState.UNINITIALIZED:
            raise KeyStoreStateError(f"No key store found in {self.directory}")
        digest = self.digest_path.read_text(encoding="utf-8").strip()
        if not digest:
            raise DecryptionError(f"Empty passphrase digest file {self.digest_path}")
        if not crypto.verify_password(candidate, digest):
            logger.info("Rejected passphrase for %s", self.directory)
            raise InvalidPassphrase("Invalid passphrase")
        wrapped = self.system_key_path.read_text(encoding="utf-8").strip()
        system_key = crypto.decrypt_text(wrapped, candidate)
        self._passphrase = candidate
        self._keys = crypto.SessionKeys.from_system_key(system_key)
        logger.debug("Unlocked key store in %s", self.directory)

    def unlock_with_default(self) -> bool:
        """Try the sentinel passphrase; return whether the store unlocked."""
        try:
            self.unlock(DEFAULT_PASSPHRASE)
        except InvalidPassphrase:
            return False
        return True

    def lock(self) -> None:
        """Forget the in-memory key."""
        self._passphrase = None
        self._keys = None

    def change_passphrase(self, new_passphrase: str) -> None:
        """Re-wrap the existing system key under *new_passphrase*.

        In-memory state changes only after both files were written.
        """
        keys = self._require_keys()
        if not new_passphrase:
            raise ValueError("New passphrase required")
        self._persist(new_passphrase, keys.system_key)
        self._passphrase = new_passphrase
        logger.info("Changed passphrase for %s", self.directory)

    # -----------------------------------------------------------------
    # Data encryption
    # -----------------------------------------------------------------

    def encrypt_text(self, plaintext: str) -> str:
        return crypto.encrypt_with_key(self._require_keys().data_key, plaintext)

    def decrypt_text(self, ciphertext: str) -> str:
        return crypto.decrypt_with_key(self._require_keys().data_key, ciphertext)

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    def _require_keys(self) -> crypto.SessionKeys:
        if self._keys is None:
            raise NotUnlocked("Key store has not been unlocked")
        return self._keys

    def _persist(self, passphrase: str, system_key: str) -> None:
        digest = crypto.hash_password(passphrase)
        wrapped = crypto.encrypt_text(system_key, passphrase)
        previous = None
        if self.system_key_path.exists():
            previous = self.system_key_path.read_text(encoding="utf-8")
        atomic_write_text(self.system_key_path, wrapped + "\n")
        try:
            atomic_write_text(self.digest_path, digest + "\n")
        except OSError:
            # key file and digest must describe the same passphrase
            if previous is None:
                self.system_key_path.unlink()
            else:
                atomic_write_text(self.system_key_path, previous)
            raise
