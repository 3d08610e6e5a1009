# -*- coding: utf-8 -*-
"""Crypto helpers and key handling for icsjournal.

This module encapsulates *stateless* cryptographic helpers and the
session key container. It does **not** perform any file I/O.

Ciphertext produced here is a single base64 string so it can be stored
as the whole content of a text file:

    passphrase mode:  base64(salt || nonce || AES-GCM ciphertext)
    key mode:         base64(nonce || AES-GCM ciphertext)
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import base64
import binascii
import secrets

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .errors import DecryptionError

# ---------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------

PH = PasswordHasher(
    time_cost=2,
    memory_cost=102_400,
    parallelism=8,
    hash_len=32,
    salt_len=16,
)

SCRYPT_N = 2 ** 14
SCRYPT_R = 8
SCRYPT_P = 1

KEK_LEN = 32
SALT_LEN = 16
NONCE_LEN = 12
SYSTEM_KEY_BYTES = 32

HKDF_INFO_ENC = b"icsjournal/data-key"


# ---------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------

@dataclass
class SessionKeys:
    """Unwrapped system key and the data key derived from it."""

    system_key: str
    data_key: bytes

    @classmethod
    def from_system_key(cls, system_key: str) -> "SessionKeys":
        return cls(
            system_key=system_key,
            data_key=hkdf_derive(system_key.encode("utf-8"), HKDF_INFO_ENC),
        )


# ---------------------------------------------------------------------
# KDF / HKDF / AEAD helpers
# ---------------------------------------------------------------------

def scrypt_kdf(password: str, salt: bytes, length: int = KEK_LEN) -> bytes:
    """Derive a key from a password using scrypt."""
    kdf = Scrypt(salt=salt, length=length, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(password.encode("utf-8"))

def hkdf_derive(key_material: bytes, info: bytes, length: int = 32) -> bytes:
    """Derive a subkey from key material using HKDF-SHA256."""
    hk = HKDF(algorithm=hashes.SHA256(), length=length, salt=None, info=info)
    return hk.derive(key_material)

def aesgcm_encrypt(key: bytes, plaintext: bytes, aad: Optional[bytes] = None) -> Tuple[bytes, bytes]:
    """Encrypt *plaintext* with AES-GCM; return (nonce, ciphertext)."""
    nonce = secrets.token_bytes(NONCE_LEN)
    ct = AESGCM(key).encrypt(nonce, plaintext, aad)
    return nonce, ct

def aesgcm_decrypt(key: bytes, nonce: bytes, ciphertext: bytes, aad: Optional[bytes] = None) -> bytes:
    """Decrypt AES-GCM *ciphertext* with *nonce*; return plaintext."""
    return AESGCM(key).decrypt(nonce, ciphertext, aad)


# ---------------------------------------------------------------------
# Password digests
# ---------------------------------------------------------------------

def hash_password(password: str) -> str:
    """Return a salted argon2 digest of *password*."""
    return PH.hash(password)

def verify_password(password: str, digest: str) -> bool:
    """True if *password* matches *digest*; malformed digests never match."""
    try:
        return PH.verify(digest, password)
    except (VerificationError, InvalidHashError):
        return False


# ---------------------------------------------------------------------
# Text encryption
# ---------------------------------------------------------------------

def generate_system_key() -> str:
    """Random secret used as the data-encryption key material."""
    return secrets.token_urlsafe(SYSTEM_KEY_BYTES)

def _b64decode(text: str) -> bytes:
    try:
        return base64.b64decode(text.strip().encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise DecryptionError("Ciphertext is not valid base64") from exc

def encrypt_text(plaintext: str, passphrase: str) -> str:
    """Encrypt *plaintext* under a key stretched from *passphrase*."""
    salt = secrets.token_bytes(SALT_LEN)
    key = scrypt_kdf(passphrase, salt)
    nonce, ct = aesgcm_encrypt(key, plaintext.encode("utf-8"))
    return base64.b64encode(salt + nonce + ct).decode("ascii")

def decrypt_text(ciphertext: str, passphrase: str) -> str:
    """Reverse :func:`encrypt_text`; raise DecryptionError on failure."""
    raw = _b64decode(ciphertext)
    if len(raw) < SALT_LEN + NONCE_LEN:
        raise DecryptionError("Ciphertext is truncated")
    salt = raw[:SALT_LEN]
    nonce = raw[SALT_LEN:SALT_LEN + NONCE_LEN]
    key = scrypt_kdf(passphrase, salt)
    try:
        plaintext = aesgcm_decrypt(key, nonce, raw[SALT_LEN + NONCE_LEN:])
    except InvalidTag as exc:
        raise DecryptionError("Wrong passphrase or corrupt data") from exc
    return plaintext.decode("utf-8")

def encrypt_with_key(key: bytes, plaintext: str) -> str:
    """Encrypt *plaintext* with a ready-made 256-bit key."""
    nonce, ct = aesgcm_encrypt(key, plaintext.encode("utf-8"))
    return base64.b64encode(nonce + ct).decode("ascii")

def decrypt_with_key(key: bytes, ciphertext: str) -> str:
    """Reverse :func:`encrypt_with_key`; raise DecryptionError on failure."""
    raw = _b64decode(ciphertext)
    if len(raw) < NONCE_LEN:
        raise DecryptionError("Ciphertext is truncated")
    try:
        plaintext = aesgcm_decrypt(key, raw[:NONCE_LEN], raw[NONCE_LEN:])
    except InvalidTag as exc:
        raise DecryptionError("Wrong key or corrupt data") from exc
    return plaintext.decode("utf-8")
