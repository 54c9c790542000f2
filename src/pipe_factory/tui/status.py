"""
Factory status tables.

Renders steps and workers as rich tables, either once or live while a
run is in progress (subscribe print_snapshot to WorldState).
"""

from typing import Any, Optional

from rich.table import Table

from .console import AgentConsole, get_console

STATUS_STYLES = {
    "pending": "dim",
    "in_progress": "bold cyan",
    "completed": "green",
    "failed": "bold red",
    "idle": "dim",
    "moving": "cyan",
    "operating": "bold yellow",
    "carrying": "magenta",
}


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status, "")
    return f"[{style}]{status}[/]" if style else status


def steps_table(steps: list[dict[str, Any]], title: str = "Steps") -> Table:
    """Table of Step.to_dict() rows."""
    table = Table(title=title, header_style="bold", expand=False)
    table.add_column("Step")
    table.add_column("Station")
    table.add_column("Description")
    table.add_column("Params", style="dim")
    table.add_column("Worker", justify="right")
    table.add_column("Status")

    for step in steps:
        params = " ".join(f"{k}={v:g}" for k, v in step["params"].items())
        worker = step.get("assignedWorker")
        table.add_row(
            step["id"],
            step["machineId"],
            step["description"],
            params,
            "" if worker is None else str(worker),
            _styled(step["status"]),
        )
    return table


def workers_table(workers: list[dict[str, Any]]) -> Table:
    """Table of Worker.to_dict() rows."""
    table = Table(title="Workers", header_style="bold")
    table.add_column("Id", justify="right")
    table.add_column("Role")
    table.add_column("Position")
    table.add_column("Status")
    table.add_column("Carrying", style="dim")

    for worker in workers:
        table.add_row(
            str(worker["id"]),
            worker["role"],
            worker["position"],
            _styled(worker["status"]),
            worker.get("carrying") or "",
        )
    return table


def print_plan_table(
    steps: list[dict[str, Any]],
    *,
    title: str = "Production plan",
    console: Optional[AgentConsole] = None,
) -> None:
    console = console or get_console()
    console.print(steps_table(steps, title=title))


def print_snapshot(snapshot: Any, *, console: Optional[AgentConsole] = None) -> None:
    """Print a FactorySnapshot: workers, then steps."""
    console = console or get_console()
    data = snapshot.to_dict()
    console.print(workers_table(data["workers"]))
    rack = data["rack"]
    console.print(f"Pipe rack: {len(rack['stored'])}/{rack['capacity']}")
    if data["steps"]:
        console.print(steps_table(data["steps"]))
