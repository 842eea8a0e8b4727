from __future__ import annotations

from passlib.context import CryptContext

# hex_sha256 is the bare digest older installs stored; it still verifies but is
# flagged for rehashing on the next successful login.
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "hex_sha256"], deprecated=["hex_sha256"])


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_and_update(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Verify ``password`` and return a replacement hash when the stored one is outdated."""

    return pwd_context.verify_and_update(password, password_hash)
