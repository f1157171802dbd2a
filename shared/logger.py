"""
Portex Structured Logger
=========================

Provides :class:`PortexLogger`, the logging facade used by the analysis
engine and the CLI.  Records go to a Rich console handler on stderr and,
optionally, to a rotating log file as plain text or JSON lines.

The decode pipeline itself (``portex.parsers``) never logs; only the
layers that perform I/O do.

References:
    - Python logging HOWTO. https://docs.python.org/3/howto/logging.html
    - Rich library. https://github.com/Textualize/rich
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

if TYPE_CHECKING:
    from shared.config import PortexConfig

_LOG_THEME = Theme(
    {
        "log.level.debug": "dim cyan",
        "log.level.info": "bold bright_blue",
        "log.level.warning": "bold yellow",
        "log.level.error": "bold red",
        "log.level.critical": "bold white on red",
    }
)

_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_STANDARD_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel"})


def _parse_level(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


# ---------------------------------------------------------------------------
# Formatters and handlers
# ---------------------------------------------------------------------------

class _JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Output fields::

        {
          "timestamp": "2024-05-01T12:00:00+00:00",
          "level": "WARNING",
          "logger": "portex.engine",
          "message": "Decode failed: ...",
          "component": "engine",
          "operation": "decode",
          "fields": {"path": "app.exe", "kind": "TruncatedData"}
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in ("component", "operation"):
            value = getattr(record, attr, None)
            if value is not None:
                entry[attr] = value

        fields = getattr(record, "portex_fields", None)
        if fields:
            entry["fields"] = fields

        if record.exc_info and record.exc_info[1] is not None:
            entry["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(entry, ensure_ascii=False, default=str)


def _console_handler(level: int) -> RichHandler:
    return RichHandler(
        console=Console(theme=_LOG_THEME, stderr=True),
        level=level,
        show_path=False,
        show_time=True,
        rich_tracebacks=True,
        markup=False,
    )


def _file_handler(
    log_file: str | Path,
    level: int,
    json_logs: bool,
    max_bytes: int,
    backup_count: int,
) -> RotatingFileHandler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(path),
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    if json_logs:
        handler.setFormatter(_JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(fmt=_TEXT_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")
        )
    return handler


# ---------------------------------------------------------------------------
# PortexLogger
# ---------------------------------------------------------------------------

class PortexLogger:
    """Context-aware logger bound to one Portex component.

    Keyword arguments other than the stdlib ones (``exc_info`` and
    friends) are collected as structured fields and written to the JSON
    log.

    Usage::

        log = PortexLogger("engine", log_file="portex.log", json_logs=True)
        with log.operation("decode"):
            log.debug("Reading %s", path, size=len(data))

    Args:
        component: Name appended to the ``portex.`` logger hierarchy.
        log_level: Minimum severity name.
        log_file: Rotating log file path, ``None`` to disable.
        json_logs: Emit JSON lines instead of text to the log file.
        max_bytes: Log-file size that triggers rotation.
        backup_count: Rotated files to keep.
        console_output: Attach the Rich stderr handler.
    """

    def __init__(
        self,
        component: str,
        *,
        log_level: str = "WARNING",
        log_file: str | Path | None = None,
        json_logs: bool = False,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
        console_output: bool = True,
    ) -> None:
        self._component = component
        self._operation: str | None = None

        level = _parse_level(log_level)
        self._logger = logging.getLogger(f"portex.{component}")
        self._logger.setLevel(level)
        self._logger.propagate = False
        self._logger.handlers.clear()

        if console_output:
            self._logger.addHandler(_console_handler(level))
        if log_file is not None:
            self._logger.addHandler(
                _file_handler(log_file, level, json_logs, max_bytes, backup_count)
            )

    @classmethod
    def from_config(
        cls,
        component: str,
        config: PortexConfig,
        *,
        log_level: str | None = None,
    ) -> PortexLogger:
        """Build a logger from the ``[global]`` config section.

        *log_level* overrides the configured level (used by ``--verbose``).
        """
        section = config.global_config
        return cls(
            component,
            log_level=log_level or section.log_level,
            log_file=section.log_file or None,
            json_logs=section.log_json,
        )

    # ------------------------------------------------------------------ #
    #  Operation scope
    # ------------------------------------------------------------------ #

    class _OperationContext:
        """Binds an operation name for the duration of a ``with`` block."""

        def __init__(self, parent: PortexLogger, operation: str) -> None:
            self._parent = parent
            self._operation = operation
            self._previous: str | None = None

        def __enter__(self) -> PortexLogger:
            self._previous = self._parent._operation
            self._parent._operation = self._operation
            return self._parent

        def __exit__(self, *exc: Any) -> None:
            self._parent._operation = self._previous

    def operation(self, name: str) -> _OperationContext:
        """Tag every record emitted inside the block with ``operation=name``."""
        return self._OperationContext(self, name)

    # ------------------------------------------------------------------ #
    #  Emitting
    # ------------------------------------------------------------------ #

    def _log(self, level: int, msg: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        options = {key: kwargs.pop(key) for key in list(kwargs) if key in _STANDARD_KWARGS}
        extra: dict[str, Any] = {
            "component": self._component,
            "operation": self._operation,
        }
        if kwargs:
            extra["portex_fields"] = kwargs
        self._logger.log(level, msg, *args, extra=extra, **options)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.DEBUG, msg, args, kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.INFO, msg, args, kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.WARNING, msg, args, kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log(logging.ERROR, msg, args, kwargs)

    # ------------------------------------------------------------------ #
    #  Timing
    # ------------------------------------------------------------------ #

    class _TimingContext:
        """Measures a block and logs its duration at DEBUG."""

        def __init__(self, parent: PortexLogger, label: str) -> None:
            self._parent = parent
            self._label = label
            self._start = 0.0
            self.elapsed = 0.0

        def __enter__(self) -> PortexLogger._TimingContext:
            self._start = time.perf_counter()
            return self

        def __exit__(self, *exc: Any) -> None:
            self.elapsed = time.perf_counter() - self._start
            self._parent.debug(
                "%s took %.3f ms", self._label, self.elapsed * 1000.0,
                elapsed_ms=round(self.elapsed * 1000.0, 3),
            )

    def timed(self, label: str) -> _TimingContext:
        """Context manager that records ``elapsed`` seconds for *label*."""
        return self._TimingContext(self, label)

    # ------------------------------------------------------------------ #
    #  Properties
    # ------------------------------------------------------------------ #

    @property
    def component(self) -> str:
        return self._component

    @property
    def underlying(self) -> logging.Logger:
        """Direct access to the stdlib :class:`logging.Logger`."""
        return self._logger
