"""
Global error handlers.

Domain exceptions propagate out of services and controllers and are turned
into the standard ``{"success", "message", "data"}`` envelope here.
"""

import logging

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from odonto.core.api_utils import api_response
from odonto.core.exceptions import DomainException, ValidationException

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainException)
    def handle_domain_exception(error: DomainException):
        data = {"error": error.error_code}
        if isinstance(error, ValidationException) and error.errors:
            data["errors"] = error.errors

        log = logger.warning if error.status_code >= 400 else logger.info
        log(
            f"{type(error).__name__}: {error.message}",
            extra={
                "context": {
                    "path": request.path,
                    "method": request.method,
                    "status_code": error.status_code,
                    "error": error.error_code,
                }
            },
        )
        return api_response(False, error.message, data, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return api_response(
            False,
            error.description or error.name,
            {"error": error.name.lower().replace(" ", "_")},
            error.code or 500,
        )

    @app.errorhandler(Exception)
    def handle_unexpected_exception(error: Exception):
        logger.error(
            "Unhandled exception",
            extra={
                "context": {
                    "path": request.path,
                    "method": request.method,
                    "error": str(error),
                }
            },
            exc_info=True,
        )
        data = {"error": "internal_error"}
        if app.debug:
            data["detail"] = str(error)
        return api_response(False, "An unexpected error occurred", data, 500)
