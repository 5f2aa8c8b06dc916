from __future__ import annotations

from passlib.context import CryptContext
from passlib.hash import pbkdf2_sha256

# bcrypt only sees the first 72 bytes of a secret.
BCRYPT_MAX_BYTES = 72

_pwd_context = CryptContext(schemes=["bcrypt", "pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        return pbkdf2_sha256.hash(password)
    try:
        return _pwd_context.hash(password)
    except (ValueError, RuntimeError):
        # No usable bcrypt backend.
        return pbkdf2_sha256.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return _pwd_context.verify(password, password_hash)
    except (ValueError, TypeError, RuntimeError):
        return False
