#!/usr/bin/env python
"""
Orchestrated Production Example

The planner agent reads the step digest and dispatches each task to one
of the five worker agents, waiting for every worker to report back before
the next dispatch.

Usage:
    python examples/orchestrated_run.py

Requirements:
    - ANTHROPIC_API_KEY (or OPENAI_API_BASE + OPENAI_API_KEY) set
    - Pipe factory installed: pip install -e .
"""

import asyncio

from pipe_factory.agents.orchestrator import create_orchestrator
from pipe_factory.config import FactorySettings, configure_logging
from pipe_factory.factory.spec import ProductSpec
from pipe_factory.llm import create_provider_from_env


async def main():
    """Run one 10m straight pipe through the agent hierarchy."""
    configure_logging()
    spec = ProductSpec(totalLength=10, initialDiameter=1.0)

    provider = create_provider_from_env()
    orchestrator = create_orchestrator(
        provider,
        settings=FactorySettings(time_scale=0, worker_max_turns=15),
        verbose=True,  # Show every tool call
    )

    try:
        summary = await orchestrator.run(spec)
    finally:
        await provider.close()

    print(f"\n{summary.status.value}: {summary.summary}")
    for step in summary.failed_steps:
        print(f"  {step.label}: {step.error}")


if __name__ == "__main__":
    asyncio.run(main())
