#!/usr/bin/env python
"""
Offline Production Example

Builds a pipe on the scripted production line: no reasoning service, the
worker tools are called in a fixed order. Prints the step table and the
rack contents at the end.

Usage:
    python examples/build_pipe.py [examples/specs/reducer.json]

Requirements:
    - Pipe factory installed: pip install -e .
"""

import asyncio
import sys
from pathlib import Path

from pipe_factory.config import FactorySettings
from pipe_factory.factory.line import ProductionLine
from pipe_factory.factory.spec import ProductSpec
from pipe_factory.tui import print_plan_table, print_result


async def main():
    """Validate, decompose and build one pipe."""
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).parent / "specs" / "reducer.json"
    spec = ProductSpec.from_file(path)

    # time_scale=0 skips the walking and machine delays
    line = ProductionLine(settings=FactorySettings(time_scale=0))

    plan = line.prepare(spec)
    print(f"Order: {path.name} -> {len(plan.steps)} steps\n")

    await line.execute_all(plan)

    print_plan_table([s.to_dict() for s in plan.steps])
    print_result(
        f"{len(line.world.rack)} segment(s) on the rack, {plan.get_summary()['progress']} done",
        success=plan.is_complete,
        title="[LINE FINISHED]",
    )


if __name__ == "__main__":
    asyncio.run(main())
