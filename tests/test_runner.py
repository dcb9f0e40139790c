"""
Tests for the Runner: persistence, rewind, cancellation and compaction.
"""

import asyncio
from contextlib import aclosing

import pytest

from pyadk.agents import LlmAgent, ParallelAgent, RunConfig, SequentialAgent, StreamingMode
from pyadk.compaction import BaseEventSummarizer, EventsCompactionConfig
from pyadk.errors import CompactionConfigError, RewindIndexError, SessionNotFoundError
from pyadk.events import Content, Event, EventActions, EventCompaction
from pyadk.llm.base import LLMResponse
from pyadk.runners import InMemoryRunner, Runner
from pyadk.sessions import InMemorySessionService
from helpers import FakeLLM, ScriptedAgent, collect


class FixedSummarizer(BaseEventSummarizer):
    def __init__(self):
        self.calls: list[list[Event]] = []

    async def maybe_summarize_events(self, events):
        self.calls.append(list(events))
        return Event(
            author="user",
            actions=EventActions(compaction=EventCompaction(
                start_timestamp=events[0].timestamp,
                end_timestamp=events[-1].timestamp,
                compacted_content=Content.from_text("recap"),
            )),
        )


async def stored_events(runner: Runner, user_id: str = "u1", session_id: str = "s1") -> list[Event]:
    session = await runner.session_service.get_session(runner.app_name, user_id, session_id)
    return session.events


def test_runner_requires_collaborators():
    """Test constructor validation."""
    service = InMemorySessionService()

    with pytest.raises(ValueError):
        Runner(None, "app", service)  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        Runner(ScriptedAgent("a"), "", service)


@pytest.mark.asyncio
async def test_run_persists_events_in_order():
    """Test that the user message and every agent event are stored in order."""
    agent = SequentialAgent("seq", sub_agents=[
        ScriptedAgent("a", script=("a1", "a2")),
        ScriptedAgent("b", script=("b1",)),
    ])
    runner = InMemoryRunner(agent, app_name="demo")

    events = await collect(runner.run_async("u1", "s1", new_message="go"))
    history = await stored_events(runner)

    assert [e.text for e in events] == ["a1", "a2", "b1"]
    assert history[0].author == "user"
    assert history[0].content.role == "user"
    assert [e.id for e in history[1:]] == [e.id for e in events]
    assert {e.invocation_id for e in history} == {events[0].invocation_id}


@pytest.mark.asyncio
async def test_partial_events_never_persisted():
    """Test that partial events are yielded but not stored."""
    llm = FakeLLM([LLMResponse(content="one two three")])
    runner = InMemoryRunner(LlmAgent("talker", llm), run_config=RunConfig(streaming_mode=StreamingMode.SSE))

    events = await collect(runner.run_async("u1", "s1", new_message="hi"))
    history = await stored_events(runner)

    assert any(e.partial for e in events)
    assert not any(e.partial for e in history)
    assert [e.id for e in history[1:]] == [e.id for e in events if not e.partial]


@pytest.mark.asyncio
async def test_parallel_events_all_persisted():
    """Test that concurrently produced events all land in history."""
    agent = ParallelAgent("par", sub_agents=[ScriptedAgent(n, script=(n,)) for n in ("X", "Y", "Z")])
    runner = InMemoryRunner(agent)

    events = await collect(runner.run_async("u1", "s1", new_message="fan out"))
    history = await stored_events(runner)

    assert [e.id for e in history[1:]] == [e.id for e in events]
    assert sorted(e.branch for e in history[1:]) == ["main.X", "main.Y", "main.Z"]


@pytest.mark.asyncio
async def test_session_is_reused_and_state_only_seeds_new_sessions():
    """Test get-or-create semantics across turns."""
    runner = InMemoryRunner(ScriptedAgent("a"))

    await collect(runner.run_async("u1", "s1", new_message="first", state={"count": 1}))
    await collect(runner.run_async("u1", "s1", new_message="second", state={"count": 99}))

    session = await runner.session_service.get_session(runner.app_name, "u1", "s1")
    assert session.state["count"] == 1
    assert [e.text for e in session.events] == ["first", "ok", "second", "ok"]
    assert len(await runner.session_service.list_sessions(runner.app_name)) == 1


@pytest.mark.asyncio
async def test_run_without_message_records_no_user_event():
    """Test running with no new message."""
    runner = InMemoryRunner(ScriptedAgent("a"))

    await collect(runner.run_async("u1", "s1"))

    assert [e.author for e in await stored_events(runner)] == ["a"]


@pytest.mark.asyncio
async def test_state_delta_applied_through_runner():
    """Test that event state deltas reach the stored session."""
    agent = ScriptedAgent("a", script=(("saved", EventActions(state_delta={"answer": 42})),))
    runner = InMemoryRunner(agent)

    await collect(runner.run_async("u1", "s1", new_message="x"))

    session = await runner.session_service.get_session(runner.app_name, "u1", "s1")
    assert session.state["answer"] == 42


@pytest.mark.asyncio
async def test_rewind_replays_then_continues():
    """Test that rewind yields stored events up to the index, then runs live."""
    runner = InMemoryRunner(ScriptedAgent("a", script=("reply",)))
    await collect(runner.run_async("u1", "s1", new_message="first"))
    before = await stored_events(runner)

    events = await collect(runner.rewind_async("u1", "s1", from_index=0, new_message="again"))

    assert events[0].id == before[0].id
    assert [e.text for e in events] == ["first", "reply"]

    history = await stored_events(runner)
    assert [e.text for e in history] == ["first", "reply", "again", "reply"]


@pytest.mark.asyncio
async def test_rewind_missing_session_raises():
    """Test rewinding a session that does not exist."""
    runner = InMemoryRunner(ScriptedAgent("a"))

    with pytest.raises(SessionNotFoundError) as exc_info:
        await collect(runner.rewind_async("u1", "ghost", from_index=0))

    assert isinstance(exc_info.value, LookupError)


@pytest.mark.asyncio
@pytest.mark.parametrize("index", [-1, 2, 10])
async def test_rewind_index_out_of_range(index):
    """Test that a bad rewind index is rejected before running anything."""
    agent = ScriptedAgent("a")
    runner = InMemoryRunner(agent)
    await collect(runner.run_async("u1", "s1", new_message="hi"))
    agent.run_log.clear()

    with pytest.raises(RewindIndexError) as exc_info:
        await collect(runner.rewind_async("u1", "s1", from_index=index))

    assert isinstance(exc_info.value, IndexError)
    assert agent.run_log == []


@pytest.mark.asyncio
async def test_cancel_event_stops_persistence():
    """Test that nothing is stored once the cancel event is set."""
    cancel_event = asyncio.Event()
    runner = InMemoryRunner(ScriptedAgent("a", script=("one", "two", "three")))

    received = []
    with pytest.raises(asyncio.CancelledError):
        async with aclosing(runner.run_async("u1", "s1", new_message="go", cancel_event=cancel_event)) as events:
            async for event in events:
                received.append(event.text)
                cancel_event.set()

    assert received == ["one"]
    assert [e.text for e in await stored_events(runner)] == ["go", "one"]


@pytest.mark.asyncio
async def test_abandoned_stream_persists_only_consumed_events():
    """Test that stopping iteration early stops persistence."""
    runner = InMemoryRunner(ScriptedAgent("a", script=("one", "two", "three")))

    async with aclosing(runner.run_async("u1", "s1", new_message="go")) as events:
        async for event in events:
            break

    assert [e.text for e in await stored_events(runner)] == ["go", "one"]


@pytest.mark.asyncio
async def test_compaction_runs_after_invocation():
    """Test that compaction triggers once enough invocations accumulate."""
    summarizer = FixedSummarizer()
    config = RunConfig(events_compaction_config=EventsCompactionConfig(
        compaction_interval=2, overlap_size=0, summarizer=summarizer,
    ))
    runner = InMemoryRunner(ScriptedAgent("a"), run_config=config)

    await collect(runner.run_async("u1", "s1", new_message="first"))
    assert summarizer.calls == []

    await collect(runner.run_async("u1", "s1", new_message="second"))

    assert [e.text for e in summarizer.calls[0]] == ["first", "ok", "second", "ok"]
    history = await stored_events(runner)
    assert history[-1].is_compaction


@pytest.mark.asyncio
async def test_compaction_without_summarizer_fails_invocation():
    """Test the configuration error surfaces from the run."""
    config = RunConfig(events_compaction_config=EventsCompactionConfig(compaction_interval=1))
    runner = InMemoryRunner(ScriptedAgent("a"), run_config=config)

    with pytest.raises(CompactionConfigError):
        await collect(runner.run_async("u1", "s1", new_message="hi"))


@pytest.mark.asyncio
async def test_per_call_run_config_overrides_default():
    """Test passing a run config to a single call."""
    llm = FakeLLM(default=LLMResponse(content="fine"))
    runner = InMemoryRunner(LlmAgent("talker", llm), run_config=RunConfig(max_llm_calls=0))

    events = await collect(runner.run_async(
        "u1", "s1", new_message="hi", run_config=RunConfig(streaming_mode=StreamingMode.SSE),
    ))

    assert any(e.partial for e in events)
