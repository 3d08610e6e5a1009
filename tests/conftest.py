"""
conftest.py
-----------
Shared pytest fixtures for icsjournal tests.

Provides fixtures for:
- Temporary data directories
- Fast password hashing / key stretching parameters
- Key stores and sample entries
"""
import logging
from datetime import datetime, timezone

import pytest
from argon2 import PasswordHasher

from icsjournal import crypto
from icsjournal.models import Attachment, Entry
from icsjournal.security import KeyStore


# ----- Environment Fixtures -----

@pytest.fixture(autouse=True)
def fast_crypto(monkeypatch):
    """Use cheap argon2/scrypt parameters so tests run quickly."""
    monkeypatch.setattr(
        crypto,
        "PH",
        PasswordHasher(time_cost=1, memory_cost=8, parallelism=1, hash_len=16, salt_len=8),
    )
    monkeypatch.setattr(crypto, "SCRYPT_N", 2 ** 4)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep config and data lookups inside the test's temp directory."""
    monkeypatch.setenv("ICSJOURNAL_CONFIG", str(tmp_path / "config" / "config.json"))
    monkeypatch.delenv("ICSJOURNAL_DIR", raising=False)
    yield
    logger = logging.getLogger("icsjournal")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


# ----- Path Fixtures -----

@pytest.fixture
def data_dir(tmp_path):
    """Empty journal data directory."""
    path = tmp_path / "journal"
    path.mkdir()
    return path


# ----- Key Store Fixtures -----

@pytest.fixture
def keystore(data_dir):
    """Initialized and unlocked key store (default passphrase)."""
    store = KeyStore(data_dir)
    store.initialize()
    return store


# ----- Entry Fixtures -----

@pytest.fixture
def make_entry():
    """Factory for unsaved entries."""
    counter = {"n": 0}

    def _make(start=datetime(2024, 3, 15, 9, 30), summary="Entry", **kwargs):
        counter["n"] += 1
        kwargs.setdefault("uid", f"test-{counter['n']}@icsjournal")
        return Entry(start=start, summary=summary, **kwargs)

    return _make


@pytest.fixture
def full_entry():
    """Entry with every field populated."""
    return Entry(
        uid="icsjournal-20240315-093000-abc@icsjournal",
        start=datetime(2024, 3, 15, 9, 30),
        summary="Trip to the coast",
        description="Long walk.\nWind, rain; and a café.",
        categories="travel, Family",
        sequence=3,
        last_modified=datetime(2024, 3, 16, 8, 0, tzinfo=timezone.utc),
        created=datetime(2024, 3, 15, 9, 31, 5, tzinfo=timezone.utc),
        attachments=[Attachment("beach photo.png", "image/png", b"\x89PNG\r\n\x00\xff")],
    )


class Recorder:
    """Change listener that records notifications."""

    def __init__(self):
        self.events = []

    def entry_added(self, entry):
        self.events.append(("added", entry))

    def entry_updated(self, entry):
        self.events.append(("updated", entry))

    def entry_deleted(self, entry):
        self.events.append(("deleted", entry))


@pytest.fixture
def recorder():
    return Recorder()
