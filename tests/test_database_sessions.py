"""
Tests for the SQLAlchemy-backed session service.
"""

import pytest
import pytest_asyncio

from pyadk.errors import SessionExistsError
from pyadk.events import Content, Event, EventActions, FunctionCall
from pyadk.sessions import DatabaseSessionService, GetSessionConfig


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path}/sessions.db"


@pytest_asyncio.fixture
async def service(database_url):
    service = DatabaseSessionService(database_url)
    yield service
    await service.close()


@pytest.mark.asyncio
async def test_create_and_get_session(service):
    """Test creating a session and reading it back."""
    created = await service.create_session("app", "user-1", state={"count": 1}, session_id="s1")
    fetched = await service.get_session("app", "user-1", "s1")

    assert created.id == "s1"
    assert fetched.state == {"count": 1}
    assert fetched.events == []


@pytest.mark.asyncio
async def test_duplicate_session_id_raises(service):
    """Test that reusing a session id is rejected."""
    await service.create_session("app", "user-1", session_id="s1")

    with pytest.raises(SessionExistsError):
        await service.create_session("app", "user-1", session_id="s1")


@pytest.mark.asyncio
async def test_missing_session_returns_none(service):
    """Test reading a session that does not exist."""
    assert await service.get_session("app", "user-1", "nope") is None


@pytest.mark.asyncio
async def test_events_survive_reopen(database_url):
    """Test that events and state are durable across service instances."""
    first = DatabaseSessionService(database_url)
    session = await first.create_session("app", "user-1", session_id="s1")

    call_event = Event(
        author="agent",
        content=Content.from_function_call(FunctionCall(name="lookup", args={"id": 1}, id="c1"), role="model"),
        invocation_id="e-1",
    )
    text_event = Event.from_text(
        "agent", "done", actions=EventActions(state_delta={"count": 2}), invocation_id="e-1",
    )
    await first.append_event(session, call_event)
    await first.append_event(session, Event.from_text("agent", "par", partial=True))
    await first.append_event(session, text_event)
    await first.close()

    second = DatabaseSessionService(database_url)
    try:
        stored = await second.get_session("app", "user-1", "s1")
    finally:
        await second.close()

    assert stored.events == [call_event, text_event]
    assert stored.state == {"count": 2}


@pytest.mark.asyncio
async def test_scoped_state(service):
    """Test app, user and temp state handling."""
    first = await service.create_session("app", "user-1", state={"app:mode": "fast"}, session_id="s1")
    await service.create_session("app", "user-1", session_id="s2")
    await service.create_session("app", "user-2", session_id="s3")

    await service.append_event(first, Event.from_text(
        "agent", "x", actions=EventActions(state_delta={"user:name": "Ada", "temp:tmp": 1, "local": True}),
    ))

    assert first.state["temp:tmp"] == 1
    assert (await service.get_session("app", "user-1", "s1")).state == {
        "app:mode": "fast", "user:name": "Ada", "local": True,
    }
    assert (await service.get_session("app", "user-1", "s2")).state == {"app:mode": "fast", "user:name": "Ada"}
    assert (await service.get_session("app", "user-2", "s3")).state == {"app:mode": "fast"}


@pytest.mark.asyncio
async def test_get_session_with_config(service):
    """Test event filtering on read."""
    session = await service.create_session("app", "user-1", session_id="s1")
    for i in range(5):
        await service.append_event(session, Event.from_text("a", str(i), timestamp=float(i)))

    recent = await service.get_session("app", "user-1", "s1", GetSessionConfig(num_recent_events=2))
    after = await service.get_session("app", "user-1", "s1", GetSessionConfig(after_timestamp=3.0))

    assert [e.text for e in recent.events] == ["3", "4"]
    assert [e.text for e in after.events] == ["3", "4"]


@pytest.mark.asyncio
async def test_list_and_delete_sessions(service):
    """Test listing and deleting sessions."""
    session = await service.create_session("app", "user-1", session_id="s1")
    await service.create_session("app", "user-2", session_id="s2")
    await service.append_event(session, Event.from_text("a", "x"))

    assert {s.id for s in await service.list_sessions("app")} == {"s1", "s2"}
    listed = await service.list_sessions("app", "user-1")
    assert [s.id for s in listed] == ["s1"]
    assert listed[0].events == []

    await service.delete_session("app", "user-1", "s1")

    assert await service.get_session("app", "user-1", "s1") is None
    assert [s.id for s in await service.list_sessions("app")] == ["s2"]
