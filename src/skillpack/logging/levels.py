"""
HUMAN logging level -- progress a person reads, not diagnostics.

``package-all`` reports each bundle at this level so the banner lines
survive ``-v``-less runs while INFO stays technical:

    debug  (10) -> archive entries, resolved paths
    info   (20) -> bundle resolved, skill installed, skill packaged
    human  (25) -> "=== Packaging: <name> ===" and per-bundle results
    warn   (30) -> validation warnings
    error  (40) -> errors
"""

import logging

import structlog

HUMAN = 25
HUMAN_NAME = "human"


def _log_human(self: logging.Logger, message, *args, **kwargs) -> None:
    if self.isEnabledFor(HUMAN):
        self._log(HUMAN, message, args, **kwargs)


def register_human_level() -> None:
    """Make HUMAN usable from stdlib loggers and structlog's BoundLogger.

    ``BoundLogger.log(HUMAN, ...)`` looks the level up in structlog's name
    table and then calls the stdlib logger method of that name, so both
    need an entry. Safe to call more than once.
    """
    logging.addLevelName(HUMAN, HUMAN_NAME.upper())
    if not hasattr(logging.Logger, HUMAN_NAME):
        setattr(logging.Logger, HUMAN_NAME, _log_human)

    level_to_name = getattr(structlog.stdlib, "LEVEL_TO_NAME", None)
    if level_to_name is not None:
        level_to_name[HUMAN] = HUMAN_NAME
    name_to_level = getattr(structlog.stdlib, "NAME_TO_LEVEL", None)
    if name_to_level is not None:
        name_to_level[HUMAN_NAME] = HUMAN


register_human_level()
