"""
Password hashing with bcrypt.

Hashing is CPU-bound, so the async helpers push it to Starlette's threadpool
to keep the event loop free. bcrypt only reads the first 72 bytes of input;
longer passwords are truncated explicitly so every bcrypt release agrees.
"""

import bcrypt
from starlette.concurrency import run_in_threadpool

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password_sync(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password_sync(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_encode(password), hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


async def hash_password(password: str, rounds: int = 12) -> str:
    return await run_in_threadpool(hash_password_sync, password, rounds)


async def verify_password(password: str, hashed: str) -> bool:
    return await run_in_threadpool(verify_password_sync, password, hashed)
