"""
Unit tests for agent sessions.

This module contains unit tests for:
- AgentSession turn loop and terminal outcomes
- Iteration cap and teardown
- Rate-limit backoff and resend
- SessionManager lifecycle
"""

import pytest

from pipe_factory.agents.session import (
    AgentSession,
    OutcomeStatus,
    SessionManager,
    SessionState,
)
from pipe_factory.llm import LLMResponse, ModelTier
from pipe_factory.tools import ToolResult, ToolSet, tool


class Bench:
    """A tiny actor with one plain and two terminal tools."""

    def __init__(self):
        self.pings = 0

    @tool(name="ping", description="Count a ping")
    async def ping(self) -> ToolResult:
        self.pings += 1
        return ToolResult.ok(f"pong {self.pings}")

    @tool(
        name="reportComplete",
        description="Finish",
        parameters={
            "type": "object",
            "properties": {"summary": {"type": "string"}, "success": {"type": "boolean"}},
            "required": ["summary"],
        },
        terminal=True,
    )
    async def report_complete(self, summary: str, success: bool = True) -> ToolResult:
        return ToolResult(success=success, data=summary, error=None if success else summary)

    @tool(
        name="reportProblem",
        description="Give up",
        parameters={
            "type": "object",
            "properties": {"description": {"type": "string"}},
            "required": ["description"],
        },
        terminal=True,
    )
    async def report_problem(self, description: str) -> ToolResult:
        return ToolResult.fail(description)


@pytest.fixture
def bench():
    return Bench()


@pytest.fixture
def make_session(bench, sleeps):
    def make(provider, **kwargs):
        kwargs.setdefault("sleep", sleeps)
        return AgentSession(
            name="worker-1",
            provider=provider,
            system_prompt="You operate the cutter.",
            tools=ToolSet.from_object(bench),
            tier=ModelTier.HAIKU,
            **kwargs,
        )
    return make


class TestTurnLoop:
    """Test the request/tool-call cycle."""

    @pytest.mark.asyncio
    async def test_tool_results_sent_back_next_turn(self, scripted, reply, make_session, bench):
        provider = scripted(
            reply.tools(("ping", {}), ("ping", {})),
            reply.tools(("reportComplete", {"summary": "Cut one sheet"})),
        )
        session = make_session(provider)

        outcome = await session.run("TASK: cut")

        assert outcome.status == OutcomeStatus.COMPLETED
        assert outcome.succeeded
        assert outcome.summary == "Cut one sheet"
        assert outcome.turns == 2
        assert bench.pings == 2
        second_request = provider.calls[1]["messages"]
        results = second_request[-1].tool_results
        assert [r.response for r in results] == ["pong 1", "pong 2"]

    @pytest.mark.asyncio
    async def test_request_carries_system_tier_and_tools(self, scripted, reply, make_session):
        provider = scripted(reply.text("nothing to do"))
        session = make_session(provider)

        await session.run("hello")

        request = provider.calls[0]
        assert request["system"] == "You operate the cutter."
        assert request["tier"] == ModelTier.HAIKU
        assert sorted(request["tools"]) == ["ping", "reportComplete", "reportProblem"]

    @pytest.mark.asyncio
    async def test_text_response_is_terminal(self, scripted, reply, make_session):
        session = make_session(scripted(reply.text("All done, no tools needed")))

        outcome = await session.run("hello")

        assert outcome.status == OutcomeStatus.TEXT
        assert not outcome.succeeded
        assert outcome.summary == "All done, no tools needed"
        assert session.state == SessionState.TERMINAL

    @pytest.mark.asyncio
    async def test_terminal_tool_stops_batch(self, scripted, reply, make_session, bench):
        """Calls after a terminal tool in the same batch are not executed."""
        seen = []
        provider = scripted(reply.tools(
            ("reportComplete", {"summary": "Finished"}),
            ("ping", {}),
        ))
        session = make_session(provider, on_tool_call=lambda *args: seen.append(args[1]))

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.COMPLETED
        assert seen == ["reportComplete"]
        assert bench.pings == 0
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_report_problem(self, scripted, reply, make_session):
        session = make_session(scripted(
            reply.tools(("reportProblem", {"description": "No sheet at cutter"})),
        ))

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.PROBLEM
        assert outcome.summary == "No sheet at cutter"

    @pytest.mark.asyncio
    async def test_unsuccessful_report_complete_is_problem(self, scripted, reply, make_session):
        session = make_session(scripted(
            reply.tools(("reportComplete", {"summary": "Gave up", "success": False})),
        ))

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.PROBLEM

    @pytest.mark.asyncio
    async def test_unknown_tool_reported_to_model(self, scripted, reply, make_session):
        """An unknown tool name is a soft error and the loop continues."""
        provider = scripted(
            reply.tools(("teleport", {"to": "welder"})),
            reply.tools(("reportComplete", {"summary": "Walked instead"})),
        )
        session = make_session(provider)

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.COMPLETED
        result = provider.calls[1]["messages"][-1].tool_results[0]
        assert result.is_error
        assert result.response.startswith("Error: Unknown tool: teleport. Available tools:")

    @pytest.mark.asyncio
    async def test_service_error(self, scripted, reply, make_session):
        session = make_session(scripted(LLMResponse.failure("LLM API error: 500")))

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.ERROR
        assert outcome.summary == "LLM API error: 500"
        assert outcome.turns == 1


class TestIterationCap:
    """Test the hard turn limit."""

    @pytest.mark.asyncio
    async def test_times_out_after_max_turns(self, scripted, reply, make_session):
        """The service is consulted exactly max_turns times, then the session is torn down."""
        provider = scripted(default=reply.tools(("ping", {})))
        session = make_session(provider, max_turns=3)

        outcome = await session.run("loop forever")

        assert len(provider.calls) == 3
        assert outcome.status == OutcomeStatus.TIMED_OUT
        assert outcome.turns == 3
        assert "timed out after 3 turns" in outcome.summary
        assert session.closed
        assert session.history == []

    @pytest.mark.asyncio
    async def test_closed_session_cannot_run(self, scripted, reply, make_session):
        session = make_session(scripted(default=reply.tools(("ping", {}))), max_turns=1)
        await session.run("go")

        with pytest.raises(RuntimeError):
            await session.run("again")

    @pytest.mark.asyncio
    async def test_unbounded_without_cap(self, scripted, reply, make_session):
        provider = scripted(*([reply.tools(("ping", {}))] * 25), reply.text("done"))
        session = make_session(provider)

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.TEXT
        assert outcome.turns == 26


class TestRateLimit:
    """Test backoff on rate-limited responses."""

    @pytest.mark.asyncio
    async def test_waits_retry_after_and_resends(self, scripted, reply, make_session, sleeps):
        provider = scripted(reply.rate_limited(1500), reply.text("done"))
        session = make_session(provider)

        outcome = await session.run("go")

        assert sleeps.recorded == [1.5]
        assert len(provider.calls) == 2
        assert provider.calls[0]["messages"] == provider.calls[1]["messages"]
        assert outcome.status == OutcomeStatus.TEXT

    @pytest.mark.asyncio
    async def test_default_backoff(self, scripted, reply, make_session, sleeps):
        """Without a retry-after hint the session waits 30 seconds."""
        session = make_session(scripted(reply.rate_limited(), reply.text("done")))

        await session.run("go")

        assert sleeps.recorded == [30.0]

    @pytest.mark.asyncio
    async def test_configured_backoff(self, scripted, reply, make_session, sleeps):
        session = make_session(scripted(reply.rate_limited(), reply.text("done")), backoff_ms=250)

        await session.run("go")

        assert sleeps.recorded == [0.25]

    @pytest.mark.asyncio
    async def test_rate_limit_does_not_use_a_turn(self, scripted, reply, make_session):
        provider = scripted(
            reply.rate_limited(10),
            reply.rate_limited(10),
            reply.tools(("reportComplete", {"summary": "ok"})),
        )
        session = make_session(provider, max_turns=1)

        outcome = await session.run("go")

        assert outcome.status == OutcomeStatus.COMPLETED
        assert outcome.turns == 1


class TestSessionManager:
    """Test named session lifecycle."""

    def test_get_or_create_reuses_open_session(self, scripted, make_session):
        manager = SessionManager()
        created = []

        def factory():
            created.append(make_session(scripted()))
            return created[-1]

        first = manager.get_or_create("worker-1", factory)
        second = manager.get_or_create("worker-1", factory)

        assert first is second
        assert len(created) == 1
        assert "worker-1" in manager

    def test_reset_tears_down(self, scripted, make_session):
        manager = SessionManager()
        session = manager.get_or_create("worker-1", lambda: make_session(scripted()))

        assert manager.reset("worker-1") is True
        assert session.closed
        assert "worker-1" not in manager

    def test_reset_is_idempotent(self):
        manager = SessionManager()

        assert manager.reset("worker-9") is False
        assert manager.reset("worker-9") is False
        assert len(manager) == 0

    def test_closed_session_replaced(self, scripted, make_session):
        manager = SessionManager()
        first = manager.get_or_create("planner", lambda: make_session(scripted()))
        first.teardown()

        second = manager.get_or_create("planner", lambda: make_session(scripted()))

        assert second is not first

    def test_reset_all(self, scripted, make_session):
        manager = SessionManager()
        for name in ("planner", "worker-0", "worker-4"):
            manager.get_or_create(name, lambda: make_session(scripted()))

        manager.reset_all()

        assert len(manager) == 0
