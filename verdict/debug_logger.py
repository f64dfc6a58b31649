#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Debug logging for verdict runs.

A debug session is opened with ``--debug`` or ``VERDICT_DEBUG=1`` and writes
every structured event of the run to ``verdict_debug_<timestamp>.log`` under
the logs directory. Outside a session only warnings and errors are emitted,
and they go to the standard ``logging`` hierarchy under ``verdict.*``.
"""

import contextlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from verdict import config
from verdict._version import VERDICT_VERSION

LOG_FORMAT = "%(asctime)s | %(name)-20s | %(levelname)-8s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
COMMAND_LOG_LIMIT = 500


def prune_old_logs(log_dir: Path, keep: int) -> None:
    """Delete all but the ``keep`` most recent debug logs in ``log_dir``."""
    if keep < 1 or not log_dir.is_dir():
        return
    logs = sorted(log_dir.glob("*.log"), key=lambda path: path.stat().st_mtime, reverse=True)
    for stale in logs[keep:]:
        with contextlib.suppress(OSError):
            stale.unlink()


def format_event(event: str, data: Optional[Dict[str, Any]] = None) -> str:
    if not data:
        return f"[{event}]"
    return f"[{event}] {json.dumps(data, indent=2, default=str)}"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


class DebugLogger:
    """Process-wide logger with one ``verdict.<component>`` logger per area."""

    _instance: Optional['DebugLogger'] = None

    def __init__(self, enabled: bool = False, log_dir: Optional[Path] = None):
        self.enabled = enabled
        self.log_file_path: Optional[Path] = None
        self._handler: Optional[logging.Handler] = None
        if enabled:
            self._open_session(Path(log_dir) if log_dir is not None else config.LOGS_DIR)

    @classmethod
    def initialize(cls, enabled: bool = False, log_dir: Optional[Path] = None) -> 'DebugLogger':
        """Install the process-wide logger.

        A disabled instance created before argument parsing is replaced when a
        debug session is requested afterwards.
        """
        current = cls._instance
        if current is None or (enabled and not current.enabled):
            if current is not None:
                current.close()
            cls._instance = cls(enabled, log_dir)
        return cls._instance

    @classmethod
    def get_instance(cls) -> 'DebugLogger':
        if cls._instance is None:
            cls._instance = cls(enabled=config.DEBUG)
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        if cls._instance is not None:
            cls._instance.close()
        cls._instance = None

    def _open_session(self, log_dir: Path) -> None:
        log_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_file_path = log_dir / f"verdict_debug_{stamp}.log"

        handler = logging.FileHandler(self.log_file_path, mode="w", encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        base = logging.getLogger("verdict")
        base.setLevel(logging.DEBUG)
        base.addHandler(handler)
        self._handler = handler

        prune_old_logs(log_dir, config.LOG_RETENTION_LIMIT)
        self.log("system", "DEBUG_SESSION_START", {
            "version": VERDICT_VERSION,
            "log_file": str(self.log_file_path),
            "cwd": str(Path.cwd()),
        })

    def _emit(self, component: str, level: str, msg: str, *args: Any) -> None:
        levelno = _level(level)
        if levelno < logging.WARNING and not self.enabled:
            return
        logging.getLogger(f"verdict.{component}").log(levelno, msg, *args)

    def log(self, component: str, event: str, data: Optional[Dict[str, Any]] = None, level: str = "INFO"):
        """Record ``event`` for ``component`` with an optional JSON payload."""
        self._emit(component, level, "%s", format_event(event, data))

    def log_command(self, component: str, result: Dict[str, Any]):
        if not self.enabled:
            return
        self.log(component, "COMMAND", {
            "command": str(result.get("command", ""))[:COMMAND_LOG_LIMIT],
            "exit_code": result.get("exit_code"),
            "timed_out": result.get("timed_out", False),
            "duration_ms": result.get("duration_ms"),
        }, "DEBUG")

    def log_error(self, component: str, error: BaseException, context: Optional[Dict[str, Any]] = None):
        """Record an exception that was turned into a failed result."""
        data: Dict[str, Any] = {"error_type": type(error).__name__, "error": str(error)}
        if context:
            data["context"] = context
        self.log(component, "ERROR", data, "ERROR")

    def debug(self, msg: str, *args: Any) -> None:
        self._emit("system", "DEBUG", msg, *args)

    def info(self, msg: str, *args: Any) -> None:
        self._emit("system", "INFO", msg, *args)

    def warning(self, msg: str, *args: Any) -> None:
        self._emit("system", "WARNING", msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        self._emit("system", "ERROR", msg, *args)

    def close(self):
        if self._handler is None:
            return
        self.log("system", "DEBUG_SESSION_END", {"timestamp": datetime.now().isoformat()})
        logging.getLogger("verdict").removeHandler(self._handler)
        self._handler.close()
        self._handler = None


def get_logger() -> DebugLogger:
    """Return the process-wide :class:`DebugLogger`."""
    return DebugLogger.get_instance()
