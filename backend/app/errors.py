"""Error taxonomy shared by the admin API and its exception handlers."""
from __future__ import annotations

import logging
import math

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("uvicorn.error")


class StoreUnavailable(Exception):
    """Redis could not be reached."""


class Unauthorized(Exception):
    """The request carries no admin session."""


class InvalidCredentials(Exception):
    """Username or password is wrong. Which one is never disclosed."""


class AccountLocked(Exception):
    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__("Account temporarily locked")
        self.retry_after_seconds = int(retry_after_seconds)

    @property
    def retry_after_minutes(self) -> int:
        return max(1, math.ceil(self.retry_after_seconds / 60))


def locked_response(exc: AccountLocked) -> JSONResponse:
    minutes = exc.retry_after_minutes
    return JSONResponse(
        status_code=429,
        content={
            "error": "locked",
            "retryAfterMinutes": minutes,
            "message": f"Versuche es in {minutes} Minuten erneut.",
        },
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


async def _store_unavailable(request: Request, exc: StoreUnavailable) -> JSONResponse:
    return JSONResponse(status_code=503, content={"error": "redis_unavailable"})


async def _unauthorized(request: Request, exc: Unauthorized) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "unauthorized"})


async def _invalid_credentials(request: Request, exc: InvalidCredentials) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"error": "invalid", "message": "Falsche Kombination"},
    )


async def _account_locked(request: Request, exc: AccountLocked) -> JSONResponse:
    return locked_response(exc)


async def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "internal_error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StoreUnavailable, _store_unavailable)
    app.add_exception_handler(Unauthorized, _unauthorized)
    app.add_exception_handler(InvalidCredentials, _invalid_credentials)
    app.add_exception_handler(AccountLocked, _account_locked)
    app.add_exception_handler(Exception, _internal_error)
