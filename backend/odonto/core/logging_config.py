"""
Logging setup for the clinic backend.

``setup_logging`` is called once from ``create_app``. It installs a console
handler (JSON in production, coloured text in development), optional
rotating files under ``LOG_DIR`` and the per-request hooks that stamp every
request with an ``X-Request-ID``.

Modules log with ``logging.getLogger(__name__)`` and put structured fields in
``extra={"context": {...}}``; ``JSONFormatter`` copies them into the output.
"""

import json
import logging
import logging.handlers
import os
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flask import Flask, g, request
from sqlalchemy import event
from sqlalchemy.engine import Engine

TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILES = (("app.log", None), ("odonto_errors.log", logging.ERROR))
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

_NOISY_LOGGERS = ("werkzeug", "urllib3")


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the record's ``context`` attached."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        context = getattr(record, "context", None)
        if context is not None:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        # Copy so the file handlers still see the bare level name
        tinted = logging.makeLogRecord(record.__dict__)
        color = self.LEVEL_COLORS.get(tinted.levelname, "")
        tinted.levelname = f"{color}{tinted.levelname:8}{self.RESET}"
        return super().format(tinted)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").lower() in ("1", "true", "yes")


def _as_level(log_level: Union[int, str]) -> int:
    if isinstance(log_level, int):
        return log_level
    return getattr(logging, str(log_level).upper(), logging.INFO)


def _file_handlers(log_dir: Path, level: int) -> List[logging.Handler]:
    """Rotating JSON files; raises OSError when the directory is unusable."""
    log_dir.mkdir(parents=True, exist_ok=True)
    handlers: List[logging.Handler] = []
    for filename, handler_level in LOG_FILES:
        handler = logging.handlers.RotatingFileHandler(
            log_dir / filename,
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUPS,
            encoding="utf-8",
        )
        handler.setLevel(handler_level or level)
        handler.setFormatter(JSONFormatter())
        handlers.append(handler)
    return handlers


def setup_logging(
    app: Optional[Flask] = None,
    log_level: Union[int, str] = "INFO",
    enable_sql_echo: bool = False,
    log_to_file: Optional[bool] = None,
    use_json_format: bool = False,
) -> None:
    """
    Configure the root logger and, when ``app`` is given, its request hooks.

    Args:
        app: Flask application that gets the request/response hooks
        log_level: level name or number
        enable_sql_echo: log every SQL statement with its duration
        log_to_file: write rotating files; defaults to ``LOG_TO_FILE``
        use_json_format: JSON console output instead of coloured text
    """
    level = _as_level(log_level)
    if log_to_file is None:
        log_to_file = _env_flag("LOG_TO_FILE")

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(level)
    console.setFormatter(
        JSONFormatter() if use_json_format else ConsoleFormatter(TEXT_FORMAT, DATE_FORMAT)
    )
    root.addHandler(console)

    if log_to_file:
        log_dir = Path(os.getenv("LOG_DIR", Path(__file__).resolve().parents[2] / "logs"))
        try:
            for handler in _file_handlers(log_dir, level):
                root.addHandler(handler)
        except OSError as exc:
            log_to_file = False
            root.warning(
                "Log files unavailable, logging to console only",
                extra={"context": {"log_dir": str(log_dir), "error": str(exc)}},
            )

    if enable_sql_echo:
        _register_sql_timing()
    if app is not None:
        _register_request_hooks(app)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("odonto").info(
        "Logging configured",
        extra={
            "context": {
                "level": logging.getLevelName(level),
                "sql_echo": enable_sql_echo,
                "log_to_file": log_to_file,
                "json": use_json_format,
            }
        },
    )


_sql_timing_registered = False


def _register_sql_timing() -> None:
    """Time every statement on every engine and log it at INFO."""
    global _sql_timing_registered
    if _sql_timing_registered:
        return

    sql_logger = logging.getLogger("sqlalchemy.performance")

    @event.listens_for(Engine, "before_cursor_execute")
    def _mark(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("odonto_query_starts", []).append(time.perf_counter())

    @event.listens_for(Engine, "after_cursor_execute")
    def _measure(conn, cursor, statement, parameters, context, executemany):
        elapsed_ms = (time.perf_counter() - conn.info["odonto_query_starts"].pop()) * 1000
        sql_logger.info(
            f"Query executed in {elapsed_ms:.2f}ms",
            extra={
                "context": {
                    "sql_query": statement[:500],
                    "sql_duration_ms": round(elapsed_ms, 2),
                }
            },
        )

    _sql_timing_registered = True


def _register_request_hooks(app: Flask) -> None:
    request_logger = logging.getLogger("odonto.request")

    @app.before_request
    def _start_request():
        g.request_start_time = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        g.route = request.url_rule.rule if request.url_rule is not None else request.path
        request_logger.info(
            f"{request.method} {request.path}",
            extra={
                "context": {
                    "request_id": g.request_id,
                    "route": g.route,
                    "remote_addr": request.remote_addr,
                }
            },
        )

    @app.after_request
    def _finish_request(response):
        started = g.get("request_start_time")
        if started is None:
            return response
        elapsed_ms = (time.perf_counter() - started) * 1000
        user = g.get("current_user")
        request_logger.info(
            f"{request.method} {request.path} -> {response.status_code} "
            f"in {elapsed_ms:.2f}ms",
            extra={
                "context": {
                    "request_id": g.request_id,
                    "status_code": response.status_code,
                    "duration_ms": round(elapsed_ms, 2),
                    "user_id": getattr(user, "id", None),
                }
            },
        )
        response.headers.setdefault("X-Request-ID", g.request_id)
        return response


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_performance(func_name: str, duration_ms: float, **context: Any) -> None:
    """Log how long ``func_name`` took, plus any identifying ``context``."""
    get_logger("odonto.performance").info(
        f"{func_name} completed in {duration_ms:.2f}ms",
        extra={
            "context": {"function": func_name, "duration_ms": round(duration_ms, 2), **context}
        },
    )
