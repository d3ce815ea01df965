from typing import AsyncIterator

import httpx
import pytest

from conftest import NOW, USER_ID, make_assignment, make_attempt
from learnhub.app import app
from learnhub.models import AttemptStatus, ChapterStatus
from learnhub.session.client import HttpProgressClient
from learnhub.session.engine import TestSession
from learnhub.session.errors import (
    Forbidden,
    NotFound,
    RemoteUnavailable,
    SessionInitError,
)
from learnhub.session.machine import SessionStatus
from learnhub.session.scheduler import ManualScheduler
from learnhub.session.unlock import resolve_from_progress


@pytest.fixture
async def http(client) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        yield http


async def test_full_session_against_api(http, assigned_test) -> None:
    remote = HttpProgressClient(USER_ID, client=http)
    session = TestSession(remote, ManualScheduler())

    state = await session.init("asg-1")
    assert state.is_session_active
    assert 0 < state.time_remaining_seconds <= 60

    session.answer("q1", 1)
    session.answer("q2", [1, 2])
    assert await session.save() is True

    attempt = await session.finish()
    assert attempt.status is AttemptStatus.COMPLETED
    assert attempt.score == 3
    assert attempt.passed is True
    assert attempt.answers == {"q1": 1, "q2": [1, 2]}

    again = TestSession(remote, ManualScheduler())
    with pytest.raises(SessionInitError) as exc_info:
        await again.init("asg-1")
    assert exc_info.value.reason == "attempts_exhausted"


async def test_status_codes_map_to_errors(http, assigned_test) -> None:
    with pytest.raises(NotFound):
        await HttpProgressClient(USER_ID, client=http).get_assignment("nope")
    with pytest.raises(Forbidden):
        await HttpProgressClient("someone-else", client=http).get_assignment("asg-1")


async def test_course_progress_through_client(http, assigned_course) -> None:
    remote = HttpProgressClient(USER_ID, client=http)
    await remote.complete_chapter("asg-course", "ch-1")

    chapters = resolve_from_progress(await remote.get_progress("asg-course"))
    assert [chapter.status for chapter in chapters] == [
        ChapterStatus.COMPLETED,
        ChapterStatus.UNLOCKED,
        ChapterStatus.LOCKED,
    ]


def stub_service(broken: set[str]) -> httpx.AsyncClient:
    """A service whose paths in ``broken`` answer 200 with an HTML error page."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path in broken:
            return httpx.Response(200, text="<html><body>Bad gateway</body></html>")
        if path == "/api/assignments/asg-1":
            return httpx.Response(200, json=make_assignment().model_dump(mode="json"))
        if path == "/api/assignments/asg-1/attempts":
            return httpx.Response(200, json=make_attempt().model_dump(mode="json"))
        if path == "/api/attempts/att-1/sync":
            return httpx.Response(204)
        return httpx.Response(404, json={"detail": "Not found"})

    return httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="http://testserver"
    )


async def test_unreadable_bodies_raise_remote_unavailable() -> None:
    async with stub_service({"/api/assignments/asg-1"}) as http:
        with pytest.raises(RemoteUnavailable) as exc_info:
            await HttpProgressClient(USER_ID, client=http).get_assignment("asg-1")
    assert exc_info.value.status_code == 200


async def test_incomplete_attempt_body_raises_remote_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"id": "att-1"})

    transport = httpx.MockTransport(handler)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
        with pytest.raises(RemoteUnavailable):
            await HttpProgressClient(USER_ID, client=http).start_attempt("asg-1")


async def test_unreadable_assignment_fails_init_and_allows_retry() -> None:
    broken = {"/api/assignments/asg-1"}
    async with stub_service(broken) as http:
        session = TestSession(
            HttpProgressClient(USER_ID, client=http), ManualScheduler(), clock=lambda: NOW
        )
        with pytest.raises(SessionInitError) as exc_info:
            await session.init("asg-1")
        assert exc_info.value.reason == "unavailable"
        assert isinstance(exc_info.value.__cause__, RemoteUnavailable)
        assert session.state.status is SessionStatus.FAILED

        broken.clear()
        state = await session.init("asg-1")
        assert state.status is SessionStatus.ACTIVE
        session.close()


async def test_unreadable_completion_still_finishes_session() -> None:
    async with stub_service({"/api/attempts/att-1/complete"}) as http:
        session = TestSession(
            HttpProgressClient(USER_ID, client=http), ManualScheduler(), clock=lambda: NOW
        )
        await session.init("asg-1")
        session.answer("q1", 1)

        attempt = await session.finish()

    assert session.state.status is SessionStatus.FINISHED
    assert attempt.status is AttemptStatus.COMPLETED
    assert attempt.answers == {"q1": 1}
    assert "could not be submitted" in session.state.error
    assert not session.sync.in_flight
