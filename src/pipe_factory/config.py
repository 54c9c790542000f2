"""
Configuration and Logging Setup

Provides centralized configuration and logging for the pipe factory.
Reads LOG_LEVEL and the orchestration limits from environment variables.

Usage:
    from pipe_factory.config import configure_logging, get_logger, FactorySettings

    # Configure at application startup
    configure_logging()
    settings = FactorySettings.from_env()

    # Get logger in any module
    logger = get_logger(__name__)
"""

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Default configuration
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s: %(message)s"

# Valid log levels
VALID_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

DEFAULT_WORKER_MAX_TURNS = 20
DEFAULT_RATE_LIMIT_BACKOFF_MS = 30000
DEFAULT_RACK_CAPACITY = 5


def get_log_level() -> int:
    """
    Get the log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant (e.g., logging.INFO)
    """
    level_str = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()

    if level_str not in VALID_LEVELS:
        print(
            f"Warning: Invalid LOG_LEVEL '{level_str}'. "
            f"Valid values: {', '.join(VALID_LEVELS.keys())}. "
            f"Using {DEFAULT_LOG_LEVEL}.",
            file=sys.stderr,
        )
        return VALID_LEVELS[DEFAULT_LOG_LEVEL]

    return VALID_LEVELS[level_str]


def configure_logging(
    level: Optional[int] = None,
    verbose: bool = False,
) -> None:
    """
    Configure logging for the pipe factory.

    Should be called once at application startup.

    Args:
        level: Override log level (default: from LOG_LEVEL env var)
        verbose: Use detailed format with timestamps (default: simple format)
    """
    if level is None:
        level = get_log_level()

    log_format = LOG_FORMAT if verbose else LOG_FORMAT_SIMPLE

    logging.basicConfig(
        level=level,
        format=log_format,
        stream=sys.stderr,
        force=True,  # Override any existing configuration
    )

    logging.getLogger("pipe_factory").setLevel(level)

    # Quiet noisy third-party loggers in non-debug mode
    if level > logging.DEBUG:
        logging.getLogger("anthropic").setLevel(logging.WARNING)
        logging.getLogger("asyncio").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            "Ignoring non-integer %s=%r, using %s", name, raw, default
        )
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).warning(
            "Ignoring non-numeric %s=%r, using %s", name, raw, default
        )
        return default


@dataclass
class FactorySettings:
    """
    Orchestration limits and simulation pacing.

    Reads from environment variables with sensible defaults.
    """

    # Hard cap on reasoning-service turns per worker session
    worker_max_turns: int = DEFAULT_WORKER_MAX_TURNS

    # None leaves the planner loop unbounded
    planner_max_turns: Optional[int] = None

    # Wait used when a rate-limit error carries no retry-after hint
    rate_limit_backoff_ms: int = DEFAULT_RATE_LIMIT_BACKOFF_MS

    # 1.0 is real time, 0 skips all physical delays
    time_scale: float = 1.0

    # Number of cradles in the finished-goods rack
    rack_capacity: int = DEFAULT_RACK_CAPACITY

    @classmethod
    def from_env(cls) -> "FactorySettings":
        """
        Create FactorySettings from environment variables.

        Environment variables:
            WORKER_MAX_TURNS: int (default: 20)
            PLANNER_MAX_TURNS: int (default: unbounded)
            RATE_LIMIT_BACKOFF_MS: int in ms (default: 30000)
            FACTORY_TIME_SCALE: float (default: 1.0)
            PIPE_RACK_CAPACITY: int (default: 5)
        """
        return cls(
            worker_max_turns=_env_int("WORKER_MAX_TURNS", DEFAULT_WORKER_MAX_TURNS),
            planner_max_turns=_env_int("PLANNER_MAX_TURNS", None),
            rate_limit_backoff_ms=_env_int(
                "RATE_LIMIT_BACKOFF_MS", DEFAULT_RATE_LIMIT_BACKOFF_MS
            ),
            time_scale=_env_float("FACTORY_TIME_SCALE", 1.0),
            rack_capacity=_env_int("PIPE_RACK_CAPACITY", DEFAULT_RACK_CAPACITY),
        )
