"""
test_crypto.py
--------------
Unit tests for icsjournal.crypto.
"""
import pytest

from icsjournal import crypto
from icsjournal.errors import DecryptionError


class TestPasswordDigest:
    """Test hash_password / verify_password."""

    def test_correct_password_verifies(self):
        digest = crypto.hash_password("hunter2")
        assert crypto.verify_password("hunter2", digest)

    def test_wrong_password_rejected(self):
        digest = crypto.hash_password("hunter2")
        assert not crypto.verify_password("hunter3", digest)

    def test_digest_is_salted(self):
        """The same password hashes differently each time."""
        assert crypto.hash_password("same") != crypto.hash_password("same")

    def test_malformed_digest_never_matches(self):
        assert not crypto.verify_password("hunter2", "not-a-digest")


class TestPassphraseEncryption:
    """Test encrypt_text / decrypt_text."""

    def test_round_trip(self):
        text = "BEGIN:VCALENDAR\r\nSUMMARY:café\r\nEND:VCALENDAR\r\n"
        assert crypto.decrypt_text(crypto.encrypt_text(text, "pw"), "pw") == text

    def test_wrong_passphrase(self):
        blob = crypto.encrypt_text("secret", "pw")
        with pytest.raises(DecryptionError):
            crypto.decrypt_text(blob, "other")

    def test_not_base64(self):
        with pytest.raises(DecryptionError):
            crypto.decrypt_text("%%% not base64 %%%", "pw")

    def test_truncated(self):
        with pytest.raises(DecryptionError):
            crypto.decrypt_text("AAAA", "pw")

    def test_ciphertext_is_randomized(self):
        assert crypto.encrypt_text("x", "pw") != crypto.encrypt_text("x", "pw")


class TestKeyEncryption:
    """Test encrypt_with_key / decrypt_with_key and session keys."""

    def test_round_trip(self):
        keys = crypto.SessionKeys.from_system_key(crypto.generate_system_key())
        blob = crypto.encrypt_with_key(keys.data_key, "hello")
        assert crypto.decrypt_with_key(keys.data_key, blob) == "hello"

    def test_other_key_fails(self):
        a = crypto.SessionKeys.from_system_key("key-a")
        b = crypto.SessionKeys.from_system_key("key-b")
        blob = crypto.encrypt_with_key(a.data_key, "hello")
        with pytest.raises(DecryptionError):
            crypto.decrypt_with_key(b.data_key, blob)

    def test_data_key_is_deterministic(self):
        """The data key depends only on the system key."""
        assert (
            crypto.SessionKeys.from_system_key("k").data_key
            == crypto.SessionKeys.from_system_key("k").data_key
        )

    def test_system_keys_are_unique(self):
        assert crypto.generate_system_key() != crypto.generate_system_key()
