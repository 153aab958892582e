"""Fire-and-forget jobs that run once a response has been sent."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Protocol

from starlette.background import BackgroundTask, BackgroundTasks
from starlette.responses import Response

Job = Callable[[], Awaitable[None]]
ErrorHook = Callable[[str, BaseException], None]

logger = logging.getLogger(__name__)


class TaskDispatcher(Protocol):
    def dispatch(self, response: Response, name: str, job: Job) -> None: ...


def _log_job_error(name: str, exc: BaseException) -> None:
    logger.error("Background job %s failed: %s", name, exc)


async def run_guarded(name: str, job: Job, on_error: ErrorHook = _log_job_error) -> None:
    """Run ``job`` and hand any exception to ``on_error`` instead of raising."""
    try:
        await job()
    except Exception as exc:
        on_error(name, exc)


class AfterResponseDispatcher:
    """Attach jobs to the response so Starlette runs them after the body is sent.

    The request path never awaits the job and job errors never reach the
    client. Swap this class for a queue-backed dispatcher to move the work
    out of process.
    """

    def __init__(self, on_error: Optional[ErrorHook] = None) -> None:
        self._on_error = on_error or _log_job_error

    def dispatch(self, response: Response, name: str, job: Job) -> None:
        task = BackgroundTask(run_guarded, name, job, self._on_error)
        existing = response.background
        if existing is None:
            response.background = task
            return
        if isinstance(existing, BackgroundTasks):
            existing.tasks.append(task)
            return
        response.background = BackgroundTasks(tasks=[existing, task])
