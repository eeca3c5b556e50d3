"""
Common API utilities for consistent request parsing and response formatting
across all controllers.
"""

import uuid
from datetime import date, datetime, time
from typing import Any, Dict, Optional

from flask import jsonify, request

from odonto.core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from odonto.core.exceptions import ValidationException


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def get_json_body() -> Dict[str, Any]:
    """Return the request JSON object or raise a validation error."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationException("Request body must be a JSON object")
    return data


def parse_date(value: Any, field_name: str, required: bool = True) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` date (a full ISO datetime is accepted too)."""
    if value is None or value == "":
        if required:
            raise ValidationException(f"{field_name} is required", [field_name])
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        if len(text) > 10:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationException(
            f"{field_name} must be a date in YYYY-MM-DD format", [field_name]
        )


def parse_time(value: Any, field_name: str, required: bool = True) -> Optional[time]:
    """Parse an ``HH:MM`` (or ``HH:MM:SS``) time of day."""
    if value is None or value == "":
        if required:
            raise ValidationException(f"{field_name} is required", [field_name])
        return None
    if isinstance(value, time):
        return value
    try:
        return time.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationException(
            f"{field_name} must be a time in HH:MM format", [field_name]
        )


def parse_uuid(value: Any, field_name: str, required: bool = True) -> Optional[str]:
    """Validate a UUID and return it in canonical string form."""
    if value is None or value == "":
        if required:
            raise ValidationException(f"{field_name} is required", [field_name])
        return None
    try:
        return str(uuid.UUID(str(value)))
    except ValueError:
        raise ValidationException(f"{field_name} must be a valid UUID", [field_name])


def parse_int(
    value: Any,
    field_name: str,
    default: Optional[int] = None,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        int_value = int(value)
    except (TypeError, ValueError):
        raise ValidationException(f"{field_name} must be an integer", [field_name])
    if min_value is not None and int_value < min_value:
        raise ValidationException(
            f"{field_name} must be at least {min_value}", [field_name]
        )
    if max_value is not None and int_value > max_value:
        raise ValidationException(
            f"{field_name} must be at most {max_value}", [field_name]
        )
    return int_value


def get_pagination_args() -> tuple[int, int]:
    """Read ``page`` and ``pageSize`` query parameters."""
    page = parse_int(request.args.get("page"), "page", default=1, min_value=1)
    page_size = parse_int(
        request.args.get("pageSize"),
        "pageSize",
        default=DEFAULT_PAGE_SIZE,
        min_value=1,
        max_value=MAX_PAGE_SIZE,
    )
    return page, page_size


def paginated(items: list, total: int, page: int, page_size: int) -> Dict[str, Any]:
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
    }
