"""Tests for after-response job dispatch."""
import asyncio
import logging

from starlette.background import BackgroundTask, BackgroundTasks
from starlette.responses import Response

from backend.app.tasks import AfterResponseDispatcher, run_guarded


def test_run_guarded_hands_error_to_hook():
    seen = []

    async def job():
        raise RuntimeError("boom")

    asyncio.run(run_guarded("job", job, lambda name, exc: seen.append((name, str(exc)))))
    assert seen == [("job", "boom")]


def test_run_guarded_logs_by_default(caplog):
    async def job():
        raise ValueError("bad")

    with caplog.at_level(logging.ERROR, logger="backend.app.tasks"):
        asyncio.run(run_guarded("analytics", job))
    assert "analytics" in caplog.text
    assert "bad" in caplog.text


def test_dispatch_attaches_background_task():
    calls = []

    async def job():
        calls.append("ran")

    response = Response("ok")
    AfterResponseDispatcher().dispatch(response, "job", job)
    assert isinstance(response.background, BackgroundTask)
    assert calls == []

    asyncio.run(response.background())
    assert calls == ["ran"]


def test_dispatch_keeps_existing_background_work():
    calls = []

    def existing():
        calls.append("existing")

    async def job():
        calls.append("job")

    response = Response("ok", background=BackgroundTask(existing))
    dispatcher = AfterResponseDispatcher()
    dispatcher.dispatch(response, "first", job)
    dispatcher.dispatch(response, "second", job)

    assert isinstance(response.background, BackgroundTasks)
    asyncio.run(response.background())
    assert calls == ["existing", "job", "job"]
