"""Brute-force protected admin login.

Per normalized username the guard moves through three states:

* OPEN: no failure counter, no lock.
* COUNTING: 1-5 failures recorded; the counter expires ``window_seconds``
  after the first failure.
* LOCKED: the sixth failure inside the window sets a lock flag for
  ``lock_seconds`` and deletes the counter.

A successful login deletes both keys. The increment and the threshold
check are separate commands, so two concurrent failures may both pass the
check; the lock still engages with at most one extra attempt of slack.
"""
from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import bcrypt
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..errors import AccountLocked, InvalidCredentials
from ..keyspace import Keyspace
from ..redis_gate import RedisGate

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 5
WINDOW_SECONDS = 10 * 60
LOCK_SECONDS = 10 * 60

# Compared against when no credential record exists so a missing user costs
# the same bcrypt work as a wrong password.
DUMMY_PASSWORD_HASH = bcrypt.hashpw(b"invalid-password", bcrypt.gensalt(10))


def normalize_username(value: Any) -> str:
    return str(value if value is not None else "").strip().lower()


def username_key_segment(normalized: str) -> str:
    """Readable (reversible) key segment so operators can see who is rate limited."""
    if not normalized:
        return "empty"
    return base64.urlsafe_b64encode(normalized.encode("utf-8")).rstrip(b"=").decode("ascii")


def hash_password(password: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds)).decode("ascii")


def check_password(password: str, password_hash: bytes) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash)
    except ValueError:
        # Malformed stored hash
        return False


class LoginGuard:
    def __init__(
        self,
        gate: RedisGate,
        keys: Keyspace,
        *,
        threshold: int = FAILURE_THRESHOLD,
        window_seconds: int = WINDOW_SECONDS,
        lock_seconds: int = LOCK_SECONDS,
    ) -> None:
        self._gate = gate
        self._keys = keys
        self.threshold = threshold
        self.window_seconds = window_seconds
        self.lock_seconds = lock_seconds

    async def authenticate(self, username: Any, password: Any) -> str:
        """Return the stored admin username or raise AccountLocked/InvalidCredentials."""
        normalized = normalize_username(username)
        password_text = str(password if password is not None else "")
        segment = username_key_segment(normalized)
        count_key = self._keys.failure_count(segment)
        lock_key = self._keys.lock(segment)

        async with self._gate.connection() as client:
            lock_ttl = await client.ttl(lock_key)
            if lock_ttl > 0:
                raise AccountLocked(lock_ttl)

            stored = await client.hgetall(self._keys.credentials)
            stored_username = (stored.get("username") or "").lower()
            stored_hash = stored.get("passwordHash")
            hash_bytes = stored_hash.encode("utf-8") if stored_hash else DUMMY_PASSWORD_HASH

            password_ok = await run_in_threadpool(check_password, password_text, hash_bytes)
            username_ok = bool(stored_username) and stored_username == normalized

            if not (username_ok and password_ok):
                await self._record_failure(client, count_key, lock_key)
                raise InvalidCredentials()

            await client.delete(count_key, lock_key)
            return stored_username

    async def _record_failure(self, client, count_key: str, lock_key: str) -> None:
        count = await client.incr(count_key)
        if count <= self.threshold:
            await client.expire(count_key, self.window_seconds)
            return

        async with client.pipeline(transaction=True) as pipe:
            pipe.set(lock_key, "1", ex=self.lock_seconds)
            pipe.delete(count_key)
            await pipe.execute()
        logger.warning("Admin login locked for %s seconds after repeated failures", self.lock_seconds)
        raise AccountLocked(self.lock_seconds)


async def provision_admin_credentials(
    gate: RedisGate,
    keys: Keyspace,
    settings: Settings,
    now: Optional[datetime] = None,
) -> bool:
    """Rewrite the stored admin credentials from the environment."""
    if not settings.admin_configured:
        return False

    client = await gate.get_client()
    if client is None:
        logger.warning("Cannot refresh admin credentials; Redis unavailable")
        return False

    username = normalize_username(settings.admin_username)
    password_hash = await run_in_threadpool(
        hash_password, settings.admin_password or "", settings.bcrypt_rounds
    )
    updated_at = (now or datetime.now(timezone.utc)).isoformat()

    async with gate.connection() as conn:
        async with conn.pipeline(transaction=True) as pipe:
            pipe.delete(keys.credentials)
            pipe.hset(
                keys.credentials,
                mapping={
                    "username": username,
                    "passwordHash": password_hash,
                    "updatedAt": updated_at,
                },
            )
            await pipe.execute()
    logger.info("Admin credentials refreshed for %s", username)
    return True
