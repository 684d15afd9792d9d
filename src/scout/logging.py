"""
Structured logging for thesis scout.

Every record carries the ambient run context (run id, pipeline stage and the
agent making the call) held in contextvars, plus any keyword fields passed
at the call site:

    logger = get_logger(__name__)
    with log_context(run_id=run_id, stage="discovering"):
        logger.info("Starting discovery", sources=["crunchbase", "web"])

The console gets a rich rendering prefixed with the context; LOG_FILE, when
set, gets one orjson line per record.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

CONTEXT_FIELDS = ("run_id", "stage", "agent")

_context_vars: dict[str, ContextVar[str | None]] = {
    field: ContextVar(field, default=None) for field in CONTEXT_FIELDS
}

_PREFIX_STYLES = {"run_id": "dim", "stage": "cyan", "agent": "magenta"}

NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "asyncio", "aiosqlite")


def current_context() -> dict[str, str]:
    """Context fields that are set, in display order."""
    context = {}
    for field in CONTEXT_FIELDS:
        value = _context_vars[field].get()
        if value:
            context[field] = value
    return context


def get_run_id() -> str | None:
    return _context_vars["run_id"].get()


def get_stage() -> str | None:
    return _context_vars["stage"].get()


def get_agent() -> str | None:
    return _context_vars["agent"].get()


@contextmanager
def log_context(
    run_id: str | None = None,
    stage: str | None = None,
    agent: str | None = None,
) -> Generator[None, None, None]:
    """Scope context fields to a block; None leaves a field as it is.

    Do not hold this across a ``yield`` in an async generator: the consumer
    may resume or close the generator from another context.
    """
    tokens = []
    for field, value in (("run_id", run_id), ("stage", stage), ("agent", agent)):
        if value is not None:
            tokens.append((field, _context_vars[field].set(value)))
    try:
        yield
    finally:
        for field, token in reversed(tokens):
            _context_vars[field].reset(token)


class JSONFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, context, fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
        }
        fields = getattr(record, "fields", None)
        if fields:
            entry["fields"] = fields
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str).decode()


class ContextRichHandler(RichHandler):
    """Rich console handler that prefixes the level with the run context."""

    def get_level_text(self, record: logging.LogRecord) -> Text:
        level_text = super().get_level_text(record)
        context = current_context()
        if not context:
            return level_text

        if "run_id" in context:
            # run ids are "run_<uuid7 hex>"; the tail is enough on a console
            context["run_id"] = context["run_id"].split("_")[-1][-8:]
        prefix = " ".join(f"[{_PREFIX_STYLES[k]}]{v}[/{_PREFIX_STYLES[k]}]" for k, v in context.items())
        return Text.from_markup(f"{level_text} {prefix}")


class ContextLogger:
    """Logger whose keyword arguments become structured fields on the record."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args: Any, exc_info: bool = False, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(level, msg, *args, exc_info=exc_info, extra={"fields": fields})

    def debug(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, *args, **fields)

    def info(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log(logging.INFO, msg, *args, **fields)

    def warning(self, msg: str, *args: Any, **fields: Any) -> None:
        self._log(logging.WARNING, msg, *args, **fields)

    def error(self, msg: str, *args: Any, exc_info: bool = False, **fields: Any) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **fields)


_console: Console | None = None
_configured = False


def get_console() -> Console:
    """Shared stderr console, so log lines never mix into CLI stdout output."""
    global _console
    if _console is None:
        _console = Console(stderr=True)
    return _console


def setup_logging(log_level: str = "INFO", log_file: Path | None = None, console_output: bool = True) -> None:
    """(Re)configure the ``scout`` logger tree.

    Args:
        log_level: Console level name.
        log_file: Optional JSON Lines file; always receives DEBUG and up.
        console_output: Attach the rich console handler.
    """
    global _configured

    level = getattr(logging, log_level.upper())
    root = logging.getLogger("scout")
    root.handlers.clear()
    root.propagate = False

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONFormatter())
        file_handler.setLevel(logging.DEBUG)
        root.addHandler(file_handler)
        root.setLevel(logging.DEBUG)
    else:
        root.setLevel(level)

    if console_output:
        console_handler = ContextRichHandler(
            console=get_console(),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
            markup=True,
        )
        console_handler.setLevel(level)
        root.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> ContextLogger:
    """Context-aware logger under the ``scout`` tree."""
    if not _configured:
        setup_logging()
    if not name.startswith("scout"):
        name = f"scout.{name}"
    return ContextLogger(logging.getLogger(name))
