"""Structured logging helpers for the stub server."""

from __future__ import annotations

import logging
import sys
from io import StringIO
from typing import Any, TextIO

import structlog

from .output_config import LogFormat

try:
    from rich.console import Console
    from rich.text import Text
    RICH_AVAILABLE = True
except ImportError:
    RICH_AVAILABLE = False

EVENT_COLUMN_WIDTH = 28


def _status_style(status: Any) -> str:
    if not isinstance(status, int):
        return "bright_cyan"
    if status >= 500:
        return "bold red"
    if status >= 400:
        return "yellow"
    return "green"


class RichConsoleRenderer:
    """Renders stub server events on one line, with rule mismatches below it."""

    level_styles = {
        "debug": "dim cyan",
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "critical": "bold white on red",
    }

    def __init__(self, width: int = 200) -> None:
        if not RICH_AVAILABLE:
            raise ImportError("rich is needed to render stub server logs")
        self.width = width

    def __call__(self, logger: Any, name: str, event_dict: dict[str, Any]) -> str:
        fields = dict(event_dict)
        event = str(fields.pop("event", ""))
        level = fields.pop("level", "info")
        origin = fields.pop("logger", None)
        mismatches = fields.pop("mismatches", None) or ()
        traceback = fields.pop("exception", None)

        line = Text()
        line.append(str(fields.pop("timestamp", "")), style="dim white")
        line.append(f" [{level:<8}] ", style=self.level_styles.get(level, "white"))
        if origin:
            line.append(f"{origin}: ", style="dim white")
        line.append(event.ljust(EVENT_COLUMN_WIDTH) if fields else event, style="bold white")
        self._append_fields(line, fields)

        # one block per rule so long mismatch explanations stay readable
        for entry in mismatches:
            line.append(f"\n    rule: {entry.get('rule')}", style="white")
            for reason in str(entry.get("mismatch", "")).splitlines():
                line.append(f"\n      {reason}", style="yellow")

        if traceback:
            line.append(f"\n{traceback}", style="red")

        buffer = StringIO()
        Console(file=buffer, force_terminal=True, width=self.width, legacy_windows=False).print(line, end="")
        return buffer.getvalue()

    @staticmethod
    def _append_fields(line: Text, fields: dict[str, Any]) -> None:
        for position, key in enumerate(sorted(fields)):
            if position:
                line.append(" ")
            value = fields[key]
            line.append(f"{key}=", style="dim white")
            line.append(str(value), style=_status_style(value) if key == "status" else "bright_cyan")


def _renderer_for(log_format: LogFormat) -> Any:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    if log_format == "console" and RICH_AVAILABLE:
        return RichConsoleRenderer()
    return structlog.dev.ConsoleRenderer(colors=log_format == "console")


def configure_logging(
    log_level: str,
    log_format: LogFormat = "console",
    stream: TextIO | None = None,
) -> structlog.stdlib.BoundLogger:
    """Route stub engine and stub server events through structlog.

    Logs go to stderr unless another stream is given, keeping stdout for the
    CLI banner.
    """

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, stream=stream or sys.stderr, format="%(message)s", force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
            structlog.processors.format_exc_info,
            _renderer_for(log_format),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger("stub_server")
