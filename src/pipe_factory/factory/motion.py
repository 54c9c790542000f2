"""
Motion Driver

Boundary to the animation layer. Walking, machine cycles and pick/place
gestures are awaitable operations with a fixed or computed duration.

TickingMotionDriver models each actor as a small state machine that
advances one tick at a time, so an in-flight motion is observable as
"tick N of M" instead of a chain of nested callbacks.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .constraints import STATION_POSITIONS, StationId

logger = logging.getLogger(__name__)

WALK_SPEED_M_PER_S = 1.5
GESTURE_MS = 600

# Machine cycle durations in ms
OPERATION_MS: dict[StationId, int] = {
    StationId.SHEET_STOCK: 1000,
    StationId.CUTTER: 3000,
    StationId.ROLLER: 4000,
    StationId.PRESS: 3000,
    StationId.WELDER: 4000,
    StationId.PIPE_RACK: 1000,
}


def walk_duration_ms(origin: StationId, target: StationId) -> float:
    """Time to walk between two stations."""
    distance = abs(STATION_POSITIONS[target] - STATION_POSITIONS[origin])
    if distance < 0.1:
        return 0.0
    return distance / WALK_SPEED_M_PER_S * 1000


class MotionDriver(ABC):
    """Awaitable physical actions consumed by the worker runtimes."""

    @abstractmethod
    async def move(self, worker_id: int, origin: StationId, target: StationId) -> None:
        """Walk a worker from one station to another."""

    @abstractmethod
    async def operate(self, worker_id: int, station: StationId) -> None:
        """Run one machine cycle."""

    @abstractmethod
    async def pick_up(self, worker_id: int) -> None:
        """Pick-up gesture."""

    @abstractmethod
    async def place(self, worker_id: int) -> None:
        """Place-down gesture."""

    def capture(self, worker_id: int) -> Optional[bytes]:
        """First-person camera frame, if a renderer is attached."""
        return None


@dataclass
class MotionProgress:
    action: str
    tick: int
    total: int

    @property
    def done(self) -> bool:
        return self.tick >= self.total


class TickingMotionDriver(MotionDriver):
    """
    Tick-paced motion without a renderer.

    Args:
        time_scale: 1.0 is real time; 0 completes every motion immediately
        tick_ms: Length of one tick in simulated milliseconds
    """

    def __init__(self, time_scale: float = 1.0, tick_ms: int = 100):
        self.time_scale = time_scale
        self.tick_ms = tick_ms
        self._progress: dict[int, MotionProgress] = {}

    def progress(self, worker_id: int) -> Optional[MotionProgress]:
        """Where a worker currently is in its motion."""
        return self._progress.get(worker_id)

    async def _run(self, worker_id: int, action: str, duration_ms: float) -> None:
        total = max(1, math.ceil(duration_ms / self.tick_ms)) if duration_ms > 0 else 0
        state = MotionProgress(action=action, tick=0, total=total)
        self._progress[worker_id] = state
        logger.debug("Worker %d %s: %d ticks", worker_id, action, total)

        delay = self.tick_ms / 1000 * self.time_scale
        while not state.done:
            if delay > 0:
                await asyncio.sleep(delay)
            else:
                # Still yield so other tasks observe intermediate ticks
                await asyncio.sleep(0)
            state.tick += 1

    async def move(self, worker_id: int, origin: StationId, target: StationId) -> None:
        await self._run(worker_id, f"walk {origin.value}->{target.value}",
                        walk_duration_ms(origin, target))

    async def operate(self, worker_id: int, station: StationId) -> None:
        await self._run(worker_id, f"operate {station.value}", OPERATION_MS[station])

    async def pick_up(self, worker_id: int) -> None:
        await self._run(worker_id, "pick up", GESTURE_MS)

    async def place(self, worker_id: int) -> None:
        await self._run(worker_id, "place", GESTURE_MS)
