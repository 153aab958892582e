"""Application-scoped services, created once per app and torn down on shutdown."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from .analytics.store import AnalyticsStore
from .auth.guard import LoginGuard, provision_admin_credentials
from .auth.sessions import MemorySessionStore, RedisSessionStore, SessionManager
from .config import Settings
from .errors import StoreUnavailable
from .github import PinnedRepoClient
from .keyspace import Keyspace
from .redis_gate import RedisFactory, RedisGate, redis_factory_from_url
from .tasks import AfterResponseDispatcher, TaskDispatcher

logger = logging.getLogger("uvicorn.error")


@dataclass
class AppState:
    settings: Settings
    keys: Keyspace
    gate: RedisGate
    sessions: SessionManager
    analytics: AnalyticsStore
    guard: LoginGuard
    github: PinnedRepoClient
    dispatcher: TaskDispatcher

    async def startup(self) -> None:
        client = await self.gate.get_client()
        if client is None:
            logger.warning("Redis unavailable at startup. Admin/analytics disabled until Redis is reachable.")
            self.sessions.store = MemorySessionStore()
            return

        try:
            await provision_admin_credentials(self.gate, self.keys, self.settings)
        except StoreUnavailable:
            logger.warning("Cannot refresh admin credentials; Redis unavailable")

    async def shutdown(self) -> None:
        await self.github.aclose()
        await self.gate.close()


def build_state(
    settings: Settings,
    redis_factory: Optional[RedisFactory] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> AppState:
    keys = Keyspace(settings.analytics_prefix)
    gate = RedisGate(redis_factory or redis_factory_from_url(settings.redis_url))

    def on_analytics_error(name: str, exc: BaseException) -> None:
        # Analytics is best effort; production stays quiet.
        if not settings.is_prod:
            logger.error("[%s] failed: %s", name, exc)

    return AppState(
        settings=settings,
        keys=keys,
        gate=gate,
        sessions=SessionManager(RedisSessionStore(gate, keys)),
        analytics=AnalyticsStore(gate, keys, settings.analytics_secret),
        guard=LoginGuard(gate, keys),
        github=PinnedRepoClient(settings.github_token, settings.github_username, http=http_client),
        dispatcher=AfterResponseDispatcher(on_error=on_analytics_error),
    )
