# -*- coding: utf-8 -*-
"""Typed failures raised by the storage and security layers.

Filesystem failures are not wrapped: they surface as the built-in
``OSError`` and propagate to the caller.
"""
from __future__ import annotations

from typing import Optional


class JournalError(Exception):
    """Base class for all icsjournal errors."""


class ParseError(JournalError):
    """A malformed calendar document or record.

    Parse errors are collected into logs rather than raised during a
    directory scan; the instance doubles as the log record.
    """

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.source = source

    def __str__(self) -> str:
        if self.source:
            return f"{self.source}: {self.message}"
        return self.message


class DecryptionError(JournalError):
    """Ciphertext could not be decrypted (wrong key or corrupt data)."""


class InvalidPassphrase(JournalError):
    """The candidate passphrase does not match the stored digest."""


class KeyStoreStateError(JournalError):
    """A KeyStore operation was called in a state that does not allow it."""


class NotUnlocked(KeyStoreStateError):
    """Encryption was requested before the KeyStore was unlocked."""
