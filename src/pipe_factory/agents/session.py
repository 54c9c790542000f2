"""
Agent Session

A conversational loop with the reasoning service, scoped to one actor
(the planner or one worker). Each request is one turn. Tool calls in a
batch are resolved one after another and their results go back together
on the next turn.

State machine:
    awaiting_response -> tool_call_pending -> awaiting_response -> ... -> terminal
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from ..config import DEFAULT_RATE_LIMIT_BACKOFF_MS
from ..llm import LLMProvider, Message, ModelTier, ToolResponse
from ..tools import ToolSet

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]
ToolObserver = Callable[[str, str, dict, str, bool], None]


class SessionState(str, Enum):
    AWAITING_RESPONSE = "awaiting_response"
    TOOL_CALL_PENDING = "tool_call_pending"
    TERMINAL = "terminal"


class OutcomeStatus(str, Enum):
    COMPLETED = "completed"  # reportComplete with success
    PROBLEM = "problem"  # reportProblem, or reportComplete(success=False)
    TEXT = "text"  # final natural-language answer without a terminal tool
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass
class SessionOutcome:
    """Terminal result of a session run."""

    status: OutcomeStatus
    summary: str
    turns: int

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.COMPLETED


class AgentSession:
    """
    Conversation with the reasoning service for one actor.

    Args:
        name: Session name (e.g. "planner", "worker-2")
        provider: Reasoning service
        system_prompt: Role instructions
        tools: Tools this actor may call
        tier: Model tier for requests
        max_turns: Hard cap on requests; None for unbounded
        backoff_ms: Wait after a rate limit that carries no retry-after hint
        sleep: Awaitable used for backoff waits
        on_tool_call: Callback receiving (session, tool, args, response, success)
    """

    def __init__(
        self,
        name: str,
        provider: LLMProvider,
        system_prompt: str,
        tools: ToolSet,
        tier: Optional[ModelTier] = None,
        max_turns: Optional[int] = None,
        backoff_ms: int = DEFAULT_RATE_LIMIT_BACKOFF_MS,
        sleep: Sleeper = asyncio.sleep,
        on_tool_call: Optional[ToolObserver] = None,
    ):
        self.name = name
        self.provider = provider
        self.system_prompt = system_prompt
        self.tools = tools
        self.tier = tier
        self.max_turns = max_turns
        self.backoff_ms = backoff_ms
        self._sleep = sleep
        self._on_tool_call = on_tool_call

        self.history: list[Message] = []
        self.iteration_count = 0
        self.state = SessionState.AWAITING_RESPONSE
        self.closed = False

    async def run(self, message: str) -> SessionOutcome:
        """
        Send a message and loop until the session reaches a terminal state.

        Raises:
            RuntimeError: If the session was torn down
        """
        if self.closed:
            raise RuntimeError(f"Session {self.name} was torn down; create a new one")

        self.history.append(Message(role="user", content=message))
        self.state = SessionState.AWAITING_RESPONSE

        while True:
            if self.max_turns is not None and self.iteration_count >= self.max_turns:
                logger.warning("%s timed out after %d turns", self.name, self.iteration_count)
                return self._finish(
                    OutcomeStatus.TIMED_OUT,
                    f"Session timed out after {self.iteration_count} turns without reporting completion",
                    teardown=True,
                )

            response = await self.provider.complete(
                self.history,
                tier=self.tier,
                tools=self.tools.schemas(),
                system=self.system_prompt,
            )

            if response.type == "error" and response.rate_limited:
                wait_ms = response.retry_after_ms
                if wait_ms is None:
                    wait_ms = self.backoff_ms
                logger.warning("%s rate limited; retrying in %d ms", self.name, wait_ms)
                await self._sleep(wait_ms / 1000)
                # Same history goes out again; not a new turn
                continue

            self.iteration_count += 1

            if response.type == "error":
                logger.error("%s reasoning service error: %s", self.name, response.error)
                return self._finish(OutcomeStatus.ERROR, response.error or "Unknown error")

            if response.type == "text" or not response.tool_calls:
                self.history.append(Message(role="assistant", content=response.content))
                return self._finish(OutcomeStatus.TEXT, response.content)

            self.history.append(Message(
                role="assistant", content=response.content, tool_calls=response.tool_calls
            ))
            self.state = SessionState.TOOL_CALL_PENDING

            results: list[ToolResponse] = []
            for call in response.tool_calls:
                result = await self.tools.call(call.name, call.args)
                self._notify(call.name, call.args, result.response, result.success)
                results.append(ToolResponse(
                    call_id=call.id,
                    name=call.name,
                    response=result.response,
                    is_error=not result.success,
                    attachment=result.attachment,
                ))

                if self.tools.is_terminal(call.name):
                    self.history.append(Message(role="user", tool_results=results))
                    if call.name == "reportProblem" or not result.success:
                        return self._finish(OutcomeStatus.PROBLEM, result.error or result.response)
                    return self._finish(OutcomeStatus.COMPLETED, result.data or "")

            self.history.append(Message(role="user", tool_results=results))
            self.state = SessionState.AWAITING_RESPONSE

    def _notify(self, name: str, args: dict, response: str, success: bool) -> None:
        if self._on_tool_call is not None:
            self._on_tool_call(self.name, name, args, response, success)

    def _finish(self, status: OutcomeStatus, summary: str, teardown: bool = False) -> SessionOutcome:
        self.state = SessionState.TERMINAL
        outcome = SessionOutcome(status=status, summary=summary, turns=self.iteration_count)
        if teardown:
            self.teardown()
        return outcome

    def teardown(self) -> None:
        """Release the conversation history; the session cannot be reused."""
        self.history = []
        self.state = SessionState.TERMINAL
        self.closed = True


class SessionManager:
    """
    Named sessions, created on first use and dropped on reset.
    """

    def __init__(self):
        self._sessions: dict[str, AgentSession] = {}

    def get(self, name: str) -> Optional[AgentSession]:
        return self._sessions.get(name)

    def get_or_create(self, name: str, factory: Callable[[], AgentSession]) -> AgentSession:
        session = self._sessions.get(name)
        if session is None or session.closed:
            session = factory()
            self._sessions[name] = session
        return session

    def reset(self, name: str) -> bool:
        """
        Tear down a named session.

        Returns:
            True if a session existed; resetting an unknown name is a no-op
        """
        session = self._sessions.pop(name, None)
        if session is None:
            return False
        session.teardown()
        logger.debug("Session %s reset", name)
        return True

    def reset_all(self) -> None:
        for name in list(self._sessions):
            self.reset(name)

    def __contains__(self, name: str) -> bool:
        return name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
