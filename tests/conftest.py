"""
Shared fixtures: a scripted reasoning service, a fresh factory floor and
worker runtimes that skip physical delays.
"""

import asyncio
import itertools
from types import SimpleNamespace

import pytest

from pipe_factory.config import FactorySettings
from pipe_factory.factory.motion import TickingMotionDriver
from pipe_factory.factory.spec import ProductSpec
from pipe_factory.factory.world import WorldState
from pipe_factory.llm import LLMConfig, LLMProvider, LLMResponse, ToolCall
from pipe_factory.workers.runtime import create_worker_runtimes


class ScriptedProvider(LLMProvider):
    """Returns queued responses in order and records every request."""

    def __init__(self, responses=(), default=None):
        super().__init__(LLMConfig(api_key="test-key"))
        self.responses = list(responses)
        self.default = default
        self.calls = []

    async def initialize(self) -> None:
        pass

    async def complete(self, messages, tier=None, tools=None, system=None, **kwargs):
        self.calls.append({
            "messages": list(messages),
            "tier": tier,
            "tools": [t["name"] for t in tools or []],
            "system": system,
        })
        # Yield like a real network call would
        await asyncio.sleep(0)
        if self.responses:
            return self.responses.pop(0)
        if self.default is not None:
            return self.default
        return LLMResponse.failure("script exhausted")


_call_ids = itertools.count(1)


def _tool_calls(*calls):
    """Build a tool_calls response from (name, args) pairs."""
    return LLMResponse(
        type="tool_calls",
        tool_calls=[
            ToolCall(id=f"call-{next(_call_ids)}", name=name, args=args or {})
            for name, args in calls
        ],
    )


def _text(content):
    return LLMResponse(type="text", content=content)


def _rate_limited(retry_after_ms=None):
    return LLMResponse.failure(
        "429 Too Many Requests", rate_limited=True, retry_after_ms=retry_after_ms
    )


@pytest.fixture
def reply():
    """Builders for scripted responses."""
    return SimpleNamespace(tools=_tool_calls, text=_text, rate_limited=_rate_limited)


@pytest.fixture
def scripted():
    """Factory for ScriptedProvider instances."""
    def make(*responses, default=None):
        return ScriptedProvider(responses, default=default)
    return make


@pytest.fixture
def sleeps():
    """Recording replacement for asyncio.sleep in backoff waits."""
    recorded = []

    async def sleep(seconds):
        recorded.append(seconds)

    sleep.recorded = recorded
    return sleep


@pytest.fixture
def settings():
    return FactorySettings(time_scale=0.0, worker_max_turns=10)


@pytest.fixture
def world():
    return WorldState(rack_capacity=5)


@pytest.fixture
def motion():
    return TickingMotionDriver(time_scale=0.0)


@pytest.fixture
def runtimes(world, motion):
    return create_worker_runtimes(world, motion)


@pytest.fixture
def straight_spec():
    """10m straight pipe, auto-filled into two 5m cylinders."""
    return ProductSpec.model_validate({"totalLength": 10, "initialDiameter": 1.0, "segments": []})


@pytest.fixture
def reducer_spec():
    """1.0m -> 0.6m frustrum followed by an auto-filled cylinder."""
    return ProductSpec.model_validate({
        "totalLength": 5,
        "initialDiameter": 1.0,
        "segments": [{"type": "frustrum", "height": 0.8, "bottomDiameter": 0.6}],
    })


@pytest.fixture
def single_spec():
    """3m pipe: one cylinder, four steps, no joins."""
    return ProductSpec.model_validate({"totalLength": 3, "initialDiameter": 1.0, "segments": []})
