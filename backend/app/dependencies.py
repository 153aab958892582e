"""FastAPI dependencies that hand request handlers their collaborators."""
from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Request

from .auth.sessions import AdminSession
from .errors import StoreUnavailable, Unauthorized

if TYPE_CHECKING:
    from .state import AppState


def get_services(request: Request) -> "AppState":
    return request.app.state.services


def get_session(request: Request) -> AdminSession:
    session = getattr(request.state, "session", None)
    if session is None:
        # Session middleware not installed (or skipped); treat as anonymous.
        session = AdminSession()
        request.state.session = session
    return session


def require_admin(session: AdminSession = Depends(get_session)) -> AdminSession:
    if session.unavailable:
        raise StoreUnavailable()
    if not session.is_admin:
        raise Unauthorized()
    return session
