"""
Production Report Generator

Summarizes a finished order: which steps completed, which failed and
why, how many dispatches it took, and how long it ran.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..factory.steps import ProductionPlan, StepStatus
from ..tui import get_console, print_data_result, print_result


@dataclass
class ProductionReport:
    """
    Completion report for one order.
    """

    order: str
    status: str  # "completed", "partial", "failed", "rejected", "stopped"
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    completed_steps: list[str] = field(default_factory=list)
    failed_steps: list[dict[str, Any]] = field(default_factory=list)
    pending_steps: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)
    summary: str = ""

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.start_time and self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return None

    @property
    def duration_formatted(self) -> str:
        seconds = self.duration_seconds
        if seconds is None:
            return "unknown"
        if seconds < 60:
            return f"{seconds:.1f}s"
        minutes = seconds / 60
        if minutes < 60:
            return f"{minutes:.1f}m"
        return f"{minutes / 60:.1f}h"


def _order_line(plan: ProductionPlan) -> str:
    spec = plan.spec
    return (
        f"{spec.total_length}m pipe, initial diameter {spec.initial_diameter}m, "
        f"{len(plan.segments)} segment(s)"
    )


class ReportGenerator:
    """
    Builds ProductionReports from a plan after a run.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize the report generator.

        Args:
            verbose: Whether to print report to console
        """
        self.verbose = verbose
        self.console = get_console() if verbose else None

    def generate(
        self,
        plan: Optional[ProductionPlan],
        status: Optional[str] = None,
        errors: Optional[list[str]] = None,
        warnings: Optional[list[str]] = None,
        dispatch_count: Optional[int] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        order: str = "",
    ) -> ProductionReport:
        """
        Generate a report.

        Args:
            plan: The executed plan (None for rejected orders)
            status: Overall status; derived from step statuses if None
            errors: Validation or run errors
            warnings: Validation warnings
            dispatch_count: Number of worker dispatches, if orchestrated
            start_time: Run start
            end_time: Run end (defaults to now)
            order: Order description when there is no plan

        Returns:
            ProductionReport with summary and metrics
        """
        report = ProductionReport(
            order=_order_line(plan) if plan else order,
            status=status or "failed",
            start_time=start_time,
            end_time=end_time or datetime.now(),
            errors=list(errors or []),
            warnings=list(warnings or (plan.warnings if plan else [])),
        )

        if plan is not None:
            for step in plan.steps:
                if step.status == StepStatus.COMPLETED:
                    report.completed_steps.append(step.label)
                elif step.status == StepStatus.FAILED:
                    report.failed_steps.append({
                        "step": step.label,
                        "description": step.description,
                        "worker": step.assigned_worker,
                        "error": step.error,
                    })
                else:
                    report.pending_steps.append(step.label)
            if status is None:
                report.status = self._derive_status(plan)

        self._calculate_metrics(report, plan, dispatch_count)
        report.summary = self._generate_summary(report)

        if self.verbose:
            self._print_report(report)

        return report

    @staticmethod
    def _derive_status(plan: ProductionPlan) -> str:
        if plan.steps and plan.is_complete:
            return "completed"
        if plan.count(StepStatus.COMPLETED) > 0:
            return "partial"
        return "failed"

    def _calculate_metrics(
        self, report: ProductionReport, plan: Optional[ProductionPlan], dispatch_count: Optional[int]
    ) -> None:
        total = len(plan.steps) if plan else 0
        report.metrics = {
            "total_steps": total,
            "completed": len(report.completed_steps),
            "failed": len(report.failed_steps),
            "not_run": len(report.pending_steps),
        }
        if total:
            report.metrics["progress"] = f"{plan.progress:.0f}%"
        if dispatch_count is not None:
            report.metrics["dispatches"] = dispatch_count
        if report.duration_seconds is not None:
            report.metrics["duration_seconds"] = round(report.duration_seconds, 2)

    def _generate_summary(self, report: ProductionReport) -> str:
        parts = []

        if report.status == "completed":
            parts.append("Order completed")
        elif report.status == "rejected":
            parts.append("Order rejected")
        elif report.status == "stopped":
            parts.append("Order stopped")
        elif report.status == "partial":
            parts.append("Order partially completed")
        else:
            parts.append("Order failed")

        parts.append(f"Duration: {report.duration_formatted}")
        total = report.metrics.get("total_steps", 0)
        if total:
            parts.append(f"Steps: {len(report.completed_steps)} completed, {len(report.failed_steps)} failed of {total}")
        if report.errors:
            parts.append(f"Errors: {len(report.errors)}")

        return "\n".join(parts)

    def _print_report(self, report: ProductionReport) -> None:
        print_result(
            report.summary,
            success=report.status == "completed",
            title="[PRODUCTION REPORT]",
            console=self.console,
        )
        if report.failed_steps:
            print_data_result(
                {f["step"]: f["error"] or "failed" for f in report.failed_steps},
                title="[FAILED STEPS]",
                console=self.console,
            )
        metrics = {k: v for k, v in report.metrics.items() if k != "duration_seconds"}
        print_data_result(metrics, title="[METRICS]", console=self.console)

    def format_markdown(self, report: ProductionReport) -> str:
        """
        Format report as Markdown for file output.
        """
        lines = [
            "# Production Report",
            "",
            f"**Order:** {report.order}",
            f"**Status:** {report.status}",
            f"**Duration:** {report.duration_formatted}",
            "",
            "## Summary",
            "",
            report.summary,
            "",
        ]

        if report.warnings:
            lines.extend(["## Warnings", ""])
            lines.extend(f"- {w}" for w in report.warnings)
            lines.append("")

        if report.completed_steps:
            lines.extend(["## Completed Steps", "", ", ".join(report.completed_steps), ""])

        if report.failed_steps:
            lines.extend(["## Failed Steps", ""])
            for failure in report.failed_steps:
                worker = failure["worker"]
                by = f" (worker {worker})" if worker is not None else ""
                lines.append(f"- `{failure['step']}`{by}: {failure['error'] or 'failed'}")
            lines.append("")

        if report.errors:
            lines.extend(["## Errors", ""])
            lines.extend(f"- {e}" for e in report.errors)
            lines.append("")

        if report.metrics:
            lines.extend([
                "## Metrics",
                "",
                "| Metric | Value |",
                "|--------|-------|",
            ])
            for key, value in report.metrics.items():
                lines.append(f"| {key} | {value} |")
            lines.append("")

        return "\n".join(lines)


def create_reporter(verbose: bool = True) -> ReportGenerator:
    """
    Factory function to create a report generator.

    Args:
        verbose: Whether to print reports to console
    """
    return ReportGenerator(verbose=verbose)
