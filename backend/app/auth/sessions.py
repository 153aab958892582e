"""Server-side admin sessions.

The cookie only carries a signed session id; the session record itself lives
in Redis (or in process memory when Redis was unreachable at startup).
"""
from __future__ import annotations

import json
import logging
import secrets
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from itsdangerous import BadSignature, Signer
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..errors import StoreUnavailable
from ..keyspace import Keyspace
from ..redis_gate import RedisGate

if TYPE_CHECKING:
    from ..state import AppState

logger = logging.getLogger(__name__)

SESSION_COOKIE = "koelker_admin_session"
SESSION_TTL_SECONDS = 6 * 60 * 60


@dataclass
class AdminSession:
    sid: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    destroyed: bool = False
    saved: bool = False
    # The cookie was valid but the record could not be read.
    unavailable: bool = False

    @property
    def is_admin(self) -> bool:
        return bool(self.data.get("isAdmin"))

    @property
    def admin_username(self) -> Optional[str]:
        return self.data.get("adminUsername") if self.is_admin else None

    def mark_admin(self, username: str) -> None:
        self.data = {"isAdmin": True, "adminUsername": username}


class SessionStore(ABC):
    @abstractmethod
    async def load(self, sid: str) -> Optional[Dict[str, Any]]: ...

    @abstractmethod
    async def save(self, sid: str, data: Dict[str, Any], ttl: int) -> None: ...

    @abstractmethod
    async def touch(self, sid: str, ttl: int) -> None: ...

    @abstractmethod
    async def delete(self, sid: str) -> None: ...


class RedisSessionStore(SessionStore):
    def __init__(self, gate: RedisGate, keys: Keyspace) -> None:
        self._gate = gate
        self._keys = keys

    async def load(self, sid: str) -> Optional[Dict[str, Any]]:
        async with self._gate.connection() as client:
            raw = await client.get(self._keys.session(sid))
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable session record")
            return None
        return data if isinstance(data, dict) else None

    async def save(self, sid: str, data: Dict[str, Any], ttl: int) -> None:
        async with self._gate.connection() as client:
            await client.set(self._keys.session(sid), json.dumps(data), ex=ttl)

    async def touch(self, sid: str, ttl: int) -> None:
        async with self._gate.connection() as client:
            await client.expire(self._keys.session(sid), ttl)

    async def delete(self, sid: str) -> None:
        async with self._gate.connection() as client:
            await client.delete(self._keys.session(sid))


class MemorySessionStore(SessionStore):
    """Process-local fallback; sessions are lost on restart."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._records: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    async def load(self, sid: str) -> Optional[Dict[str, Any]]:
        record = self._records.get(sid)
        if record is None:
            return None
        expires_at, data = record
        if expires_at <= self._clock():
            del self._records[sid]
            return None
        return dict(data)

    async def save(self, sid: str, data: Dict[str, Any], ttl: int) -> None:
        self._records[sid] = (self._clock() + ttl, dict(data))

    async def touch(self, sid: str, ttl: int) -> None:
        record = self._records.get(sid)
        if record is not None:
            self._records[sid] = (self._clock() + ttl, record[1])

    async def delete(self, sid: str) -> None:
        self._records.pop(sid, None)


class SessionManager:
    def __init__(self, store: SessionStore, ttl: int = SESSION_TTL_SECONDS) -> None:
        self.store = store
        self.ttl = ttl

    @staticmethod
    def new_sid() -> str:
        return secrets.token_urlsafe(32)

    async def load(self, sid: Optional[str]) -> AdminSession:
        if not sid:
            return AdminSession()
        data = await self.store.load(sid)
        if data is None:
            return AdminSession()
        return AdminSession(sid=sid, data=data)

    async def rotate(self, session: AdminSession) -> None:
        """Drop the current record and start over under a fresh id."""
        if session.sid:
            await self.store.delete(session.sid)
        session.sid = self.new_sid()
        session.data = {}
        session.saved = False

    async def save(self, session: AdminSession) -> None:
        if session.sid is None:
            session.sid = self.new_sid()
        await self.store.save(session.sid, session.data, self.ttl)
        session.saved = True

    async def destroy(self, session: AdminSession) -> None:
        if session.sid:
            await self.store.delete(session.sid)
        session.sid = None
        session.data = {}
        session.destroyed = True

    async def touch(self, session: AdminSession) -> None:
        if session.sid:
            await self.store.touch(session.sid, self.ttl)


class SessionMiddleware(BaseHTTPMiddleware):
    """Load the session before the handler runs and refresh it afterwards."""

    def __init__(self, app, state: "AppState") -> None:
        super().__init__(app)
        self.state = state
        self.signer = Signer(state.settings.auth_secret, salt="koelker-admin-session")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        manager = self.state.sessions
        cookie = request.cookies.get(SESSION_COOKIE)
        sid = self._unsign(cookie)

        try:
            session = await manager.load(sid)
        except StoreUnavailable:
            session = AdminSession(sid=sid, unavailable=True)
        request.state.session = session

        response = await call_next(request)

        if session.destroyed:
            if cookie:
                self._clear_cookie(response)
            return response

        if session.sid is None:
            return response

        if not session.saved and not session.unavailable:
            try:
                await manager.touch(session)
            except StoreUnavailable:
                logger.warning("Could not refresh session expiry; store unavailable")
        self._set_cookie(response, session.sid)
        return response

    def _unsign(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            return self.signer.unsign(value).decode("utf-8")
        except BadSignature:
            return None

    def _set_cookie(self, response: Response, sid: str) -> None:
        response.set_cookie(
            SESSION_COOKIE,
            self.signer.sign(sid).decode("utf-8"),
            max_age=self.state.sessions.ttl,
            httponly=True,
            secure=self.state.settings.is_prod,
            samesite="lax",
        )

    def _clear_cookie(self, response: Response) -> None:
        response.delete_cookie(
            SESSION_COOKIE,
            httponly=True,
            secure=self.state.settings.is_prod,
            samesite="lax",
        )
