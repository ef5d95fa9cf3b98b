"""
Human Log -- formatter and helper for packaging/installation progress.

Example stderr of ``skillpack package-all``:

    === Packaging: alpha ===
      4 entries -> dist/alpha.zip

    === Packaging: beta-skill ===
      FAILED beta-skill: Skill prompt file not found at ...
"""

import logging
import sys

from .levels import HUMAN

# Keys added by the shared structlog processors, never event parameters.
_RESERVED_KEYS = frozenset({"event", "level", "logger", "timestamp"})


class HumanFormatter:
    """Turns structured progress events into readable lines."""

    def format_event(self, event: str, **kw) -> str | None:
        """Format an event, or return None for events with no human form."""
        match event:
            case "package.start":
                name = kw.get("name", "?")
                return f"=== Packaging: {name} ==="

            case "package.done":
                entries = kw.get("entries", "?")
                path = kw.get("path", "?")
                return f"  {entries} entries -> {path}\n"

            case "package.failed":
                name = kw.get("name", "?")
                error = kw.get("error", "unknown error")
                return f"  FAILED {name}: {error}"

            case "validate.warning":
                name = kw.get("name", "?")
                message = kw.get("message", "")
                return f"  warning [{name}] {message}"

            case _:
                return None


class HumanLogHandler(logging.Handler):
    """Logging handler that only renders HUMAN records.

    Writes to stderr so the stdout of ``load`` stays pipeable.
    """

    def __init__(self, stream=None) -> None:
        super().__init__(level=HUMAN)
        self.stream = stream or sys.stderr
        self.formatter_inst = HumanFormatter()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if record.levelno != HUMAN:
                return

            # structlog's wrap_for_formatter leaves the event dict in record.msg
            if isinstance(record.msg, dict):
                event = record.msg.get("event", "")
                kw = {k: v for k, v in record.msg.items() if k not in _RESERVED_KEYS}
            else:
                event = record.getMessage()
                kw = {}

            formatted = self.formatter_inst.format_event(str(event), **kw)
            if formatted is not None:
                self.stream.write(formatted + "\n")
                self.stream.flush()
        except Exception:
            self.handleError(record)


class HumanLog:
    """Typed helper for emitting HUMAN-level events.

    Usage:
        hlog = HumanLog(structlog.get_logger())
        hlog.package_start("alpha")
    """

    def __init__(self, logger) -> None:
        self._log = logger

    def package_start(self, name: str) -> None:
        self._log.log(HUMAN, "package.start", name=name)

    def package_done(self, name: str, entries: int, path: str) -> None:
        self._log.log(HUMAN, "package.done", name=name, entries=entries, path=path)

    def package_failed(self, name: str, error: str) -> None:
        self._log.log(HUMAN, "package.failed", name=name, error=error)

    def validation_warning(self, name: str, message: str) -> None:
        self._log.log(HUMAN, "validate.warning", name=name, message=message)
