"""
Domain and application exceptions.

Each exception carries the HTTP status code the global error handler
answers with, so controllers can simply let them propagate.
"""

from typing import List, Optional


class DomainException(Exception):
    """Base class for every business error raised by the domain layer."""

    status_code = 400
    error_code = "domain_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidValueException(DomainException, ValueError):
    """A value object or entity field received an invalid value."""

    error_code = "invalid_value"


class ValidationException(DomainException):
    """Request payload failed validation; may carry several field errors."""

    error_code = "validation_error"

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class EntityNotFoundException(DomainException):
    status_code = 404
    error_code = "not_found"

    def __init__(self, entity: str, entity_id: object = None):
        if entity_id is None:
            message = f"{entity} not found"
        else:
            message = f"{entity} with ID {entity_id} not found"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id


class ValueNotFoundException(DomainException):
    status_code = 404
    error_code = "value_not_found"


class DuplicatedValueException(DomainException):
    status_code = 409
    error_code = "duplicated_value"


class DuplicateEntityException(DomainException):
    status_code = 409
    error_code = "duplicate_entity"


class BusinessRuleException(DomainException):
    status_code = 422
    error_code = "business_rule_violation"


class WrongOperationException(DomainException):
    """Operation is not allowed in the entity's current state."""

    status_code = 422
    error_code = "wrong_operation"


class UnauthorizedException(DomainException):
    status_code = 401
    error_code = "unauthorized"


class AuthorizationException(DomainException):
    status_code = 403
    error_code = "forbidden"
