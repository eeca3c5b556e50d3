"""
Slow query alerts.

Statements slower than ``ALERT_QUERY_MS_THRESHOLD`` milliseconds are reported
on the ``sql.alerts`` logger together with the request that issued them.
Bound parameters often carry patient data, so credentials, contact details
and clinical fields are replaced with ``***`` before they reach the log.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

from flask import g, has_request_context
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger("sql.alerts")

DEFAULT_THRESHOLD_MS = 100
STATEMENT_LIMIT = 500
PARAM_LIMIT = 200

# Substrings of parameter names whose values never leave the database
_REDACTED_FIELDS = (
    "password",
    "token",
    "secret",
    "email",
    "phone",
    "address",
    "birth",
    "medical_history",
    "allergies",
)


def _alert_settings() -> Optional[int]:
    """Return the threshold in ms, or None when alerts are switched off."""
    if os.getenv("ALERT_SLOW_QUERY_ENABLED", "true").lower() != "true":
        return None
    raw = os.getenv("ALERT_QUERY_MS_THRESHOLD", str(DEFAULT_THRESHOLD_MS))
    try:
        return int(raw)
    except ValueError:
        return DEFAULT_THRESHOLD_MS


def _shorten(value: Any, limit: int) -> str:
    text = str(value)
    return text if len(text) <= limit else f"{text[:limit]}..."


def _is_redacted(key: Any) -> bool:
    name = str(key).lower()
    return any(field in name for field in _REDACTED_FIELDS)


def _mask_params(params: Any) -> Any:
    if isinstance(params, bytes):
        return "<binary>"
    if isinstance(params, dict):
        return {
            key: "***" if _is_redacted(key) else _mask_params(value)
            for key, value in params.items()
        }
    if isinstance(params, (list, tuple)):
        return [_mask_params(item) for item in params]
    return _shorten(params, PARAM_LIMIT)


def _gather_request_context(db_info: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    context: Dict[str, Any] = {}
    if has_request_context():
        for attr in ("request_id", "route"):
            value = g.get(attr)
            if value:
                context[attr] = value
        user = g.get("current_user")
        if user is not None:
            context["user_id"] = getattr(user, "id", None)
    for key, value in (db_info or {}).items():
        if key in ("db_host", "db_name") and value:
            context[key] = value
    return context


def register_query_timing(
    engine: Engine, db_info: Optional[Dict[str, Any]] = None
) -> None:
    """Attach the slow query listeners to ``engine`` once."""
    if getattr(engine, "_slow_query_alerts_registered", False):
        return

    target = db_info or {
        "db_host": engine.url.host,
        "db_name": engine.url.database,
    }

    @event.listens_for(engine, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        context._odonto_query_started = time.perf_counter()

    @event.listens_for(engine, "after_cursor_execute")
    def _report_if_slow(conn, cursor, statement, parameters, context, executemany):
        threshold_ms = _alert_settings()
        started = getattr(context, "_odonto_query_started", None)
        if threshold_ms is None or started is None:
            return

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if elapsed_ms < threshold_ms:
            return

        compiled = getattr(context, "compiled_parameters", None)
        if compiled:
            parameters = compiled if executemany else compiled[0]

        logger.warning(
            "Slow query detected",
            extra={
                "context": {
                    "alert_type": "slow_query",
                    "duration_ms": round(elapsed_ms, 2),
                    "threshold_ms": threshold_ms,
                    "statement": _shorten(statement or "", STATEMENT_LIMIT),
                    "params": _mask_params(parameters),
                    **_gather_request_context(target),
                }
            },
        )

    engine._slow_query_alerts_registered = True
