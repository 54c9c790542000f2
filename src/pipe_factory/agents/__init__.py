"""
Agent Hierarchy

Planner and worker sessions, the dispatch loop that ties them together,
and the production report.

Agents:
- planner (sonnet tier): assigns steps to workers via dispatchTask
- worker-0..worker-4 (haiku tier): carry out one task each per dispatch
"""

from .definitions import (
    AgentDefinition,
    get_all_agent_definitions,
    get_planner_definition,
    get_worker_definition,
)
from .session import (
    AgentSession,
    OutcomeStatus,
    SessionManager,
    SessionOutcome,
    SessionState,
)
from .orchestrator import (
    DispatchRecord,
    FactoryOrchestrator,
    RunStatus,
    RunSummary,
    create_orchestrator,
    reports_failure,
)
from .reporter import ProductionReport, ReportGenerator, create_reporter

__all__ = [
    # Definitions
    "AgentDefinition",
    "get_all_agent_definitions",
    "get_planner_definition",
    "get_worker_definition",
    # Sessions
    "AgentSession",
    "OutcomeStatus",
    "SessionManager",
    "SessionOutcome",
    "SessionState",
    # Orchestration
    "DispatchRecord",
    "FactoryOrchestrator",
    "RunStatus",
    "RunSummary",
    "create_orchestrator",
    "reports_failure",
    # Reporting
    "ProductionReport",
    "ReportGenerator",
    "create_reporter",
]
