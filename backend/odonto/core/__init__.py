# Core package initialization
# Cross-cutting concerns shared by every layer: configuration, logging,
# exceptions, security and request helpers.

from . import auth_decorators, exceptions, security

__all__ = [
    "auth_decorators",
    "exceptions",
    "security",
]
