"""
Pipe Factory CLI Entry Point

Validate, plan and manufacture pipe orders from a JSON specification.

Usage:
    pipe-factory validate order.json
    pipe-factory plan order.json
    pipe-factory run order.json --time-scale 0 --verbose
    pipe-factory run order.json --offline
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from pipe_factory.agents.orchestrator import RunStatus, create_orchestrator
from pipe_factory.agents.reporter import ReportGenerator
from pipe_factory.config import FactorySettings, configure_logging
from pipe_factory.errors import ProviderConfigurationError
from pipe_factory.factory.decomposer import TaskDecomposer
from pipe_factory.factory.line import ProductionLine
from pipe_factory.factory.spec import ProductSpec
from pipe_factory.factory.validator import ConstraintValidator
from pipe_factory.llm import create_provider_from_env
from pipe_factory.tui import (
    get_console,
    print_error,
    print_plan_table,
    print_result,
    print_snapshot,
    print_validation,
)

load_dotenv()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="pipe-factory",
        description="Pipe manufacturing planner and multi-agent factory floor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    pipe-factory validate examples/specs/reducer.json
    pipe-factory plan examples/specs/straight_10m.json
    pipe-factory run examples/specs/reducer.json --time-scale 0 --verbose
        """,
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Development mode with debug logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Check a spec against machine constraints")
    validate.add_argument("spec", type=Path, help="Path to the JSON specification")
    validate.add_argument("--json", action="store_true", help="Print the raw validation result")

    plan = sub.add_parser("plan", help="Validate and show the manufacturing steps")
    plan.add_argument("spec", type=Path, help="Path to the JSON specification")
    plan.add_argument("--digest", action="store_true", help="Print the plain-text step digest")

    run = sub.add_parser("run", help="Manufacture the order")
    run.add_argument("spec", type=Path, help="Path to the JSON specification")
    run.add_argument(
        "--offline",
        action="store_true",
        help="Run the scripted production line without a reasoning service",
    )
    run.add_argument(
        "--worker-max-turns",
        type=int,
        default=None,
        help="Maximum turns per worker session (default: WORKER_MAX_TURNS or 20)",
    )
    run.add_argument(
        "--time-scale",
        type=float,
        default=None,
        help="1.0 is real time, 0 skips physical delays (default: FACTORY_TIME_SCALE or 1.0)",
    )
    run.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Write a Markdown production report to this file",
    )
    run.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show the plan and every tool call",
    )

    return parser.parse_args(argv)


def load_spec(path: Path) -> Optional[ProductSpec]:
    """Load a spec file, printing a readable error on failure."""
    try:
        return ProductSpec.from_file(path)
    except FileNotFoundError:
        print_error(f"No such file: {path}", error_type="InputError")
    except json.JSONDecodeError as e:
        print_error(f"{path} is not valid JSON: {e}", error_type="InputError")
    except ValidationError as e:
        print_error(str(e), error_type="InputError", suggestion="Check segment types and field names")
    return None


def cmd_validate(spec: ProductSpec, as_json: bool = False) -> int:
    result = ConstraintValidator().validate(spec)
    if as_json:
        get_console().console.print_json(data=result.to_dict())
    else:
        print_validation(result.valid, result.errors, result.warnings)
    return 0 if result.valid else 1


def cmd_plan(spec: ProductSpec, digest: bool = False) -> int:
    result = ConstraintValidator().validate(spec)
    print_validation(result.valid, result.errors, result.warnings)
    if not result.valid:
        return 1

    plan = TaskDecomposer().decompose(spec, warnings=result.warnings)
    if digest:
        get_console().print(TaskDecomposer.digest(plan), markup=False, highlight=False)
    else:
        print_plan_table([s.to_dict() for s in plan.steps])
    return 0


async def run_order(
    spec: ProductSpec,
    settings: FactorySettings,
    offline: bool = False,
    verbose: bool = False,
    report_path: Optional[Path] = None,
) -> bool:
    """
    Manufacture one order.

    Returns:
        True if every step completed
    """
    reporter = ReportGenerator(verbose=True)
    start = datetime.now()

    if offline:
        line = ProductionLine(settings=settings)
        validation = ConstraintValidator(line.constraints).validate(spec)
        print_validation(validation.valid, validation.errors, validation.warnings)
        if not validation.valid:
            return False
        plan = TaskDecomposer(line.constraints, verbose=verbose).decompose(
            spec, warnings=validation.warnings
        )
        try:
            await line.execute_all(plan)
        except KeyboardInterrupt:
            line.stop()
            raise
        if verbose:
            print_snapshot(line.world.snapshot())
        report = reporter.generate(plan, start_time=start)
    else:
        provider = create_provider_from_env()
        orchestrator = create_orchestrator(provider, settings=settings, verbose=verbose)
        try:
            summary = await orchestrator.run(spec)
        finally:
            await provider.close()

        if verbose:
            print_snapshot(orchestrator.world.snapshot())

        if summary.status == RunStatus.REJECTED:
            print_validation(False, summary.validation.errors, summary.validation.warnings)
            return False

        print_result(
            summary.summary,
            success=summary.status == RunStatus.COMPLETED and not summary.failed_steps,
            title="[PLANNER]",
        )
        status = None if summary.status == RunStatus.COMPLETED else summary.status.value
        report = reporter.generate(
            summary.plan,
            status=status,
            dispatch_count=len(summary.dispatches),
            start_time=start,
        )

    if report_path is not None:
        report_path.write_text(reporter.format_markdown(report), encoding="utf-8")
        get_console().print(f"[dim]Report written to {report_path}[/dim]")

    return report.status == "completed"


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.dev:
        configure_logging(level=logging.DEBUG, verbose=True)
    else:
        configure_logging(verbose=getattr(args, "verbose", False))

    spec = load_spec(args.spec)
    if spec is None:
        return 2

    if args.command == "validate":
        return cmd_validate(spec, as_json=args.json)
    if args.command == "plan":
        return cmd_plan(spec, digest=args.digest)

    settings = FactorySettings.from_env()
    if args.worker_max_turns is not None:
        settings = replace(settings, worker_max_turns=args.worker_max_turns)
    if args.time_scale is not None:
        settings = replace(settings, time_scale=args.time_scale)

    try:
        success = asyncio.run(run_order(
            spec,
            settings,
            offline=args.offline,
            verbose=args.verbose,
            report_path=args.report,
        ))
    except ProviderConfigurationError as e:
        print_error(str(e), error_type="ConfigurationError")
        return 2
    except KeyboardInterrupt:
        get_console().print("\n[yellow]Production interrupted by user[/yellow]")
        return 130

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
