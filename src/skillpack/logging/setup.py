"""
Structured logging configuration.

Three independent pipelines, all fed by structlog through the stdlib
``logging`` module:

1. File (JSON) -- only when ``logging.file`` is configured. Captures DEBUG+.
2. Human handler (stderr) -- only HUMAN events: packaging progress.
3. Technical console (stderr) -- WARNING by default, INFO with -v, DEBUG with -vv.
   Excludes HUMAN records, which already have their own handler.

``--quiet`` silences pipelines 2 and 3. Nothing is ever written to stdout,
which belongs to command output (``skillpack load`` pipes manifests).
"""

import logging
import sys
from pathlib import Path

import structlog

from ..config.schema import LoggingConfig
from .human import HumanLogHandler
from .levels import HUMAN

_LEVEL_NAMES = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "human": HUMAN,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def configure_logging(config: LoggingConfig, quiet: bool = False) -> None:
    """Configure every logging pipeline for one CLI invocation.

    Args:
        config: Logging configuration (level, file, verbose)
        quiet: If True, disables the stderr pipelines
    """
    logging.root.handlers.clear()
    structlog.reset_defaults()
    logging.root.setLevel(logging.DEBUG)

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    # ── Pipeline 1: JSON file ─────────────────────────────────────────────
    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(file_path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(file_handler)

    if not quiet:
        # ── Pipeline 2: Human handler ─────────────────────────────────────
        human_handler = HumanLogHandler(stream=sys.stderr)
        human_handler.setLevel(HUMAN)
        human_handler.addFilter(lambda record: record.levelno == HUMAN)
        logging.root.addHandler(human_handler)

        # ── Pipeline 3: Technical console ─────────────────────────────────
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_console_level(config))
        console_handler.addFilter(lambda record: record.levelno != HUMAN)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(console_handler)

    structlog.configure(
        processors=shared_processors + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def _console_level(config: LoggingConfig) -> int:
    """Pick the technical console level.

    Without -v   -> the configured level, but never below WARNING
    -v           -> INFO
    -vv and more -> DEBUG
    """
    if config.verbose >= 2:
        return logging.DEBUG
    if config.verbose == 1:
        return logging.INFO
    return max(_LEVEL_NAMES.get(config.level, logging.WARNING), logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)
