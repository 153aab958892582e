"""Middleware for privacy-preserving page view counting."""
from __future__ import annotations

from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..tasks import TaskDispatcher
from .store import AnalyticsStore, Visit


class AnalyticsMiddleware(BaseHTTPMiddleware):
    """Count successful HTML page navigations once the response is sent."""

    # API calls, the admin area and the login page are never counted
    SKIP_PREFIXES = (
        "/api",
        "/admin",
        "/login",
    )

    def __init__(self, app, store: AnalyticsStore, dispatcher: TaskDispatcher) -> None:
        super().__init__(app)
        self.store = store
        self.dispatcher = dispatcher

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if self.should_skip(request):
            return await call_next(request)

        response = await call_next(request)
        if response.status_code >= 400:
            return response

        visit = Visit(
            ip=self._get_client_ip(request) or "",
            user_agent=request.headers.get("user-agent", ""),
            accept_language=request.headers.get("accept-language", ""),
        )

        async def record() -> None:
            await self.store.record_visit(visit)

        self.dispatcher.dispatch(response, "analytics", record)
        return response

    @classmethod
    def should_skip(cls, request: Request) -> bool:
        if request.method != "GET":
            return True
        if "text/html" not in request.headers.get("accept", ""):
            return True
        if request.url.path.startswith(cls.SKIP_PREFIXES):
            return True
        # Global Privacy Control and Do-Not-Track opt-outs
        if request.headers.get("sec-gpc") == "1" or request.headers.get("dnt") == "1":
            return True
        return False

    def _get_client_ip(self, request: Request) -> Optional[str]:
        """Get client IP address, handling proxies."""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            # Take the first IP in the chain
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return None
