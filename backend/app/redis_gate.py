"""Lazy Redis connection with a reconnect backoff.

The server keeps serving public pages when Redis is down. Admin and analytics
features ask the gate for a client on every request; a failed connect blocks
further attempts for ``retry_backoff`` seconds so an unreachable store is not
hammered, and there is no background reconnect loop.
"""
from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional

from redis.asyncio import Redis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .errors import StoreUnavailable

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 2.0
RETRY_BACKOFF_SECONDS = 30.0

RedisFactory = Callable[[], Redis]


def redis_factory_from_url(url: str) -> RedisFactory:
    def factory() -> Redis:
        return Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=CONNECT_TIMEOUT_SECONDS,
        )

    return factory


class RedisGate:
    def __init__(
        self,
        factory: RedisFactory,
        *,
        connect_timeout: float = CONNECT_TIMEOUT_SECONDS,
        retry_backoff: float = RETRY_BACKOFF_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._factory = factory
        self._connect_timeout = connect_timeout
        self._retry_backoff = retry_backoff
        self._clock = clock
        self._client: Optional[Redis] = None
        self._connecting: Optional[asyncio.Future] = None
        self._last_failure_at: Optional[float] = None
        self._last_logged_at: Optional[float] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    async def get_client(self) -> Optional[Redis]:
        """Return a connected client, or None while Redis is unreachable."""
        if self._client is not None:
            return self._client

        if self._last_failure_at is not None:
            if self._clock() - self._last_failure_at < self._retry_backoff:
                return None

        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._connect())
        return await asyncio.shield(self._connecting)

    async def require_client(self) -> Redis:
        client = await self.get_client()
        if client is None:
            raise StoreUnavailable()
        return client

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Redis]:
        """Yield a client; connection errors invalidate it and become StoreUnavailable."""
        client = await self.require_client()
        try:
            yield client
        except (RedisConnectionError, RedisTimeoutError, OSError) as exc:
            await self.invalidate(exc)
            raise StoreUnavailable() from exc

    async def invalidate(self, exc: BaseException) -> None:
        client, self._client = self._client, None
        self._last_failure_at = self._clock()
        self._log_unavailable(exc)
        if client is not None:
            await self._close_quietly(client)

    async def close(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await self._close_quietly(client)

    async def _connect(self) -> Optional[Redis]:
        client: Optional[Redis] = None
        try:
            client = self._factory()
            await asyncio.wait_for(client.ping(), timeout=self._connect_timeout)
        except (RedisError, OSError, ValueError, asyncio.TimeoutError) as exc:
            # ValueError: malformed REDIS_URL
            self._last_failure_at = self._clock()
            self._log_unavailable(exc)
            if client is not None:
                await self._close_quietly(client)
            return None
        finally:
            self._connecting = None

        self._client = client
        self._last_failure_at = None
        logger.info("Redis connection established")
        return client

    def _log_unavailable(self, exc: BaseException) -> None:
        now = self._clock()
        if self._last_logged_at is not None and now - self._last_logged_at < self._retry_backoff:
            return
        self._last_logged_at = now
        logger.warning("Redis unavailable: %s", exc or type(exc).__name__)

    @staticmethod
    async def _close_quietly(client: Redis) -> None:
        try:
            await client.aclose()
        except (RedisError, OSError) as exc:
            logger.debug("Ignoring error while closing Redis client: %s", exc)
