"""Admin authentication endpoints."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from ..dependencies import get_services, get_session, require_admin
from ..errors import StoreUnavailable, Unauthorized
from ..models import HealthResponse, MeResponse, OkResponse
from .sessions import AdminSession

router = APIRouter(prefix="/api/admin/auth/v1", tags=["admin-auth"])
logger = logging.getLogger("uvicorn.error")


@router.get("/me", response_model=MeResponse)
def me(session: AdminSession = Depends(get_session)) -> MeResponse:
    return MeResponse(is_admin=session.is_admin, username=session.admin_username)


@router.post("/login", response_model=OkResponse)
async def login(
    payload: Any = Body(None),
    session: AdminSession = Depends(get_session),
    services=Depends(get_services),
) -> OkResponse:
    # A missing body or odd field types is an ordinary failed attempt.
    body = payload if isinstance(payload, dict) else {}
    username = await services.guard.authenticate(body.get("username"), body.get("password"))

    # New id on privilege change so a planted session id is useless.
    await services.sessions.rotate(session)
    session.mark_admin(username)
    await services.sessions.save(session)
    logger.info("Admin %s logged in", username)
    return OkResponse()


@router.post("/logout", response_model=OkResponse)
async def logout(
    session: AdminSession = Depends(require_admin),
    services=Depends(get_services),
) -> OkResponse:
    await services.sessions.destroy(session)
    return OkResponse()


@router.get("/health", response_model=HealthResponse)
async def health(
    session: AdminSession = Depends(get_session),
    services=Depends(get_services),
):
    if not session.unavailable and not session.is_admin:
        raise Unauthorized()
    unavailable = JSONResponse(status_code=503, content={"ok": False, "redis": "unavailable"})
    if session.unavailable or await services.gate.get_client() is None:
        return unavailable
    try:
        async with services.gate.connection() as conn:
            pong = await conn.ping()
    except StoreUnavailable:
        return unavailable
    return HealthResponse(ok=True, redis="PONG" if pong is True else str(pong))
