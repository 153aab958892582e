from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .analytics.middleware import AnalyticsMiddleware
from .analytics.router import router as stats_router
from .auth.router import router as auth_router
from .auth.sessions import SessionMiddleware
from .config import Settings, get_settings
from .errors import register_exception_handlers
from .github import router as github_router
from .pages import ASSETS_DIR, router as pages_router
from .redis_gate import RedisFactory
from .security import SecurityHeadersMiddleware
from .state import build_state

logger = logging.getLogger("uvicorn.error")


def create_app(
    settings: Optional[Settings] = None,
    redis_factory: Optional[RedisFactory] = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level)
    services = build_state(settings, redis_factory=redis_factory, http_client=http_client)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await services.startup()
        logger.info("Serving on http://%s:%s (%s)", settings.host, settings.port, settings.app_env)
        try:
            yield
        finally:
            await services.shutdown()

    app = FastAPI(title="koelker.tech", version="1.0.0", lifespan=lifespan)
    app.state.services = services
    register_exception_handlers(app)

    # Last added runs first: security headers wrap sessions, sessions wrap analytics.
    app.add_middleware(AnalyticsMiddleware, store=services.analytics, dispatcher=services.dispatcher)
    app.add_middleware(SessionMiddleware, state=services)
    app.add_middleware(SecurityHeadersMiddleware, is_prod=settings.is_prod)

    app.include_router(auth_router)
    app.include_router(stats_router)
    app.include_router(github_router)
    app.mount("/assets", StaticFiles(directory=ASSETS_DIR, check_dir=False), name="assets")
    app.include_router(pages_router)
    return app
