"""
Password hashing (bcrypt) and opaque bearer-token primitives.

Tokens are 16 random bytes encoded as unpadded base32 for transport. Only a
SHA-256 digest of the raw bytes is ever stored: tokens are already
high-entropy, so a fast digest is enough and lookups stay cheap.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import secrets

from passlib.context import CryptContext

from forum.core.config import settings
from forum.core.exceptions import MalformedTokenError

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)

TOKEN_ENTROPY_BYTES = 16
TOKEN_PLAINTEXT_LENGTH = 26
_BASE32_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
# 26 characters carry 130 bits; the final two must be zero in an issued token
_TRAILING_BITS_MASK = 0b11


# ── Passwords ───────────────────────────────────────────────────────
def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def get_password_hash(plain: str) -> str:
    return pwd_context.hash(plain)


# ── Bearer tokens ───────────────────────────────────────────────────
def generate_token_plaintext() -> str:
    raw = secrets.token_bytes(TOKEN_ENTROPY_BYTES)
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def is_token_well_formed(plaintext: str) -> bool:
    if len(plaintext) != TOKEN_PLAINTEXT_LENGTH or not set(plaintext) <= set(_BASE32_ALPHABET):
        return False
    return _BASE32_ALPHABET.index(plaintext[-1]) & _TRAILING_BITS_MASK == 0


def hash_token(plaintext: str) -> bytes:
    """Return the stored digest for *plaintext*.

    Raises ``MalformedTokenError`` when the value is not a token we could
    have issued, so callers can reject it before touching storage.
    """
    if not is_token_well_formed(plaintext):
        raise MalformedTokenError()
    try:
        raw = base64.b32decode(plaintext + "=" * 6)
    except binascii.Error as exc:
        raise MalformedTokenError() from exc
    return hashlib.sha256(raw).digest()
