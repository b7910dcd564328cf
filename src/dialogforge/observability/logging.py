"""Structured logging for DialogForge.

Events go through structlog into stdlib logging. The ``-v`` count sets the
level of the rich console handler on stderr. ``--log`` adds a JSONL file at
``<project>/logs/debug.jsonl`` that records every event at DEBUG.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from pathlib import Path

    from structlog.typing import Processor

LOG_FILENAME = "debug.jsonl"

_configured = False
_file_handler: logging.FileHandler | None = None


class JSONLFileHandler(logging.FileHandler):
    """Write each record as one JSON object, structlog fields as top-level keys."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry: dict[str, object] = {
                "timestamp": datetime.now(UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
            }
            if isinstance(record.msg, dict):
                fields = {k: v for k, v in record.msg.items() if k not in ("level", "timestamp")}
                entry["message"] = fields.pop("event", "")
                entry.update(fields)
            else:
                entry["message"] = record.getMessage()

            if self.stream is None:
                self.stream = self._open()
            self.stream.write(json.dumps(entry, default=str) + "\n")
            self.flush()
        except Exception:
            self.handleError(record)


def _console_level(verbosity: int) -> int:
    if verbosity <= 0:
        return logging.WARNING
    return logging.INFO if verbosity == 1 else logging.DEBUG


def _console_handler(verbosity: int) -> RichHandler:
    return RichHandler(
        console=Console(stderr=True),
        level=_console_level(verbosity),
        markup=False,
        rich_tracebacks=True,
        show_time=verbosity >= 1,
        show_path=verbosity >= 2,
    )


def configure_logging(
    verbosity: int = 0,
    log_to_file: bool = False,
    log_dir: Path | None = None,
) -> None:
    """(Re)configure console and optional file logging.

    Args:
        verbosity: 0 for warnings only, 1 for INFO, 2 or more for DEBUG.
        log_to_file: Also write ``<log_dir>/logs/debug.jsonl``.
        log_dir: Project directory for the log file.

    Raises:
        ValueError: If *log_to_file* is set without *log_dir*.
    """
    global _configured, _file_handler

    if log_to_file and log_dir is None:
        raise ValueError("log_dir is required when log_to_file=True")

    close_file_logging()
    handlers: list[logging.Handler] = [_console_handler(verbosity)]
    if log_to_file and log_dir is not None:
        logs = log_dir / "logs"
        logs.mkdir(parents=True, exist_ok=True)
        _file_handler = JSONLFileHandler(logs / LOG_FILENAME, mode="a")
        _file_handler.setLevel(logging.DEBUG)
        handlers.append(_file_handler)

    # The root stays open to DEBUG whenever something downstream wants it;
    # each handler filters for itself.
    root_level = logging.DEBUG if verbosity > 0 or log_to_file else logging.WARNING
    logging.basicConfig(level=root_level, format="%(message)s", handlers=handlers, force=True)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]
    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(root_level),
        cache_logger_on_first_use=True,
    )
    _configured = True


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Bound logger for *name*, configuring default console logging on first use."""
    if not _configured:
        configure_logging()
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger


def close_file_logging() -> None:
    """Flush and close the JSONL file, if one is open."""
    global _file_handler
    if _file_handler is not None:
        _file_handler.close()
        _file_handler = None
