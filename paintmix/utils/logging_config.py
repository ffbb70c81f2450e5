"""Logging setup shared by the render and plotting entrypoints.

Provides:
    - Console handler (stderr) and optional file handler with size rotation
    - Human or JSON line format
    - Contextual fields (app, backend, size) carried on every record
    - Python warnings routed to logging, uncaught exceptions logged

Public API:
    setup_logging(log_level="INFO", context={"app": "render"})
    get_logger(name)
    push_context(backend="cpu", size="256x256")
    pop_context(keys=["size"])
    install_excepthook()

Format examples:
    Human: 2026-03-02T09:14:03.512Z | INFO     | app=render backend=cpu | Rendered 256x256 field
    JSON:  {"t": "2026-03-02T09:14:03.512000+00:00", "lvl": "INFO", "app": "render", "msg": "..."}

Invariants:
    - Library modules only call logging.getLogger(__name__); handlers are
      installed by entrypoints through setup_logging()
    - Idempotent: repeated setup_logging() calls replace the handlers installed
      by the previous call, never stack them; foreign handlers are left alone
"""

import contextvars
import json
import logging
import logging.handlers
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

_context_var: contextvars.ContextVar = contextvars.ContextVar("paintmix_log_context", default={})

_installed_handlers: list = []

_LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
_RESET = "\033[0m"


class ContextFormatter(logging.Formatter):
    """Formatter that appends the active context fields.

    Parameters
    ----------
    fmt_mode : str
        "human" (default) or "json"
    use_color : bool
        ANSI level colours; only honoured when stderr is a TTY
    """

    def __init__(self, fmt_mode: str = "human", use_color: bool = True):
        super().__init__()
        if fmt_mode not in ("human", "json"):
            raise ValueError(f"Unknown log format: {fmt_mode}. Use 'human' or 'json'.")
        self.fmt_mode = fmt_mode
        self.use_color = use_color and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        context = _context_var.get({})
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc)

        if self.fmt_mode == "json":
            payload = {
                "t": ts.isoformat(),
                "lvl": record.levelname,
                "name": record.name,
                **context,
                "msg": record.getMessage(),
            }
            if record.exc_info:
                payload["exc"] = self.formatException(record.exc_info)
            return json.dumps(payload, default=str)

        level = f"{record.levelname:8s}"
        if self.use_color:
            level = f"{_LEVEL_COLORS.get(record.levelname, '')}{level}{_RESET}"

        parts = [ts.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z", "|", level, "|"]
        if context:
            parts.append(" ".join(f"{k}={v}" for k, v in context.items()))
            parts.append("|")
        parts.append(record.getMessage())

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    *,
    json_format: bool = False,
    color: bool = True,
    to_stderr: bool = True,
    max_bytes: Optional[int] = None,
    backup_count: int = 3,
    capture_warnings: bool = True,
    quiet_libs: Optional[List[str]] = None,
    context: Optional[Dict[str, Any]] = None,
) -> List[logging.Handler]:
    """Configure the root logger.

    Parameters
    ----------
    log_level : str
        "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
    log_file : str, optional
        Also log to this file (parent directories created)
    json_format : bool
        JSON lines instead of the human format, default False
    color : bool
        Coloured console levels, default True
    to_stderr : bool
        Attach a console handler, default True
    max_bytes : int, optional
        Rotate log_file at this size; no rotation if None
    backup_count : int
        Rotated files kept, default 3
    capture_warnings : bool
        Route warnings.warn() through logging, default True
    quiet_libs : list of str, optional
        Loggers forced to WARNING; defaults to ["matplotlib", "PIL"]
    context : dict, optional
        Initial context fields, e.g. {"app": "render"}

    Returns
    -------
    list of logging.Handler
        Handlers installed on the root logger

    Raises
    ------
    ValueError
        If log_level is not a known level name
    """
    global _installed_handlers

    level = getattr(logging, log_level.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")

    root = logging.getLogger()
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    handlers: List[logging.Handler] = []
    if to_stderr:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(ContextFormatter("json" if json_format else "human", use_color=color))
        handlers.append(console)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        if max_bytes:
            file_handler: logging.Handler = logging.handlers.RotatingFileHandler(
                log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        else:
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(
            ContextFormatter("json" if json_format else "human", use_color=False)
        )
        handlers.append(file_handler)

    for handler in handlers:
        root.addHandler(handler)

    if context:
        push_context(**context)

    for lib in (quiet_libs if quiet_libs is not None else ["matplotlib", "PIL"]):
        logging.getLogger(lib).setLevel(logging.WARNING)

    if capture_warnings:
        route_warnings()

    _installed_handlers = handlers
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Logger by name (typically __name__)."""
    return logging.getLogger(name)


def push_context(**kwargs) -> None:
    """Add fields to every subsequent record in this context.

    Examples
    --------
    >>> push_context(app="render", backend="torch")
    >>> logger.info("Started")  # → "... | app=render backend=torch | Started"
    """
    _context_var.set({**_context_var.get({}), **kwargs})


def pop_context(keys: Optional[List[str]] = None) -> None:
    """Remove the given context keys, or all of them if keys is None."""
    if keys is None:
        _context_var.set({})
        return
    current = dict(_context_var.get({}))
    for key in keys:
        current.pop(key, None)
    _context_var.set(current)


def get_context() -> Dict[str, Any]:
    """Copy of the active context fields."""
    return dict(_context_var.get({}))


def install_excepthook() -> None:
    """Log uncaught exceptions at CRITICAL before the interpreter exits."""
    def log_exception(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return
        logging.getLogger(__name__).critical(
            "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = log_exception


def route_warnings() -> None:
    """Send Python warnings to the 'py.warnings' logger."""
    logging.captureWarnings(True)
    logging.getLogger("py.warnings").setLevel(logging.WARNING)
