"""Password hashing utilities.

Learn: Uses bcrypt for password hashing. bcrypt generates a random salt
on every call, so hashing the same password twice gives two different
hashes, and both still verify. The work factor (CHATGATE_BCRYPT_ROUNDS,
default 12) takes ~100ms per hash on modern hardware, which is why the
async wrappers push the work onto a thread instead of the event loop.
"""

import asyncio
from typing import Optional

import bcrypt

from chatgate.config import settings

# bcrypt only looks at the first 72 bytes
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:_MAX_PASSWORD_BYTES]


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Hash a password with bcrypt (random salt, "$2b$" prefix)."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash.

    A malformed or empty hash verifies False instead of raising.
    """
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError, AttributeError):
        return False


async def hash_password_async(password: str) -> str:
    return await asyncio.to_thread(hash_password, password)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)


_dummy_hash: Optional[str] = None


async def dummy_hash_async() -> str:
    """A throwaway hash to verify against when the email is unknown.

    Login spends one bcrypt check either way, so response time does not
    reveal whether an account exists. The hash itself is built once, on a
    worker thread; the app lifespan builds it at startup so no login pays
    for it.
    """
    global _dummy_hash
    if _dummy_hash is None:
        _dummy_hash = await asyncio.to_thread(hash_password, "chatgate-no-such-user")
    return _dummy_hash
