"""Staff password hashing and the Bearer tokens issued at login."""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DEV_JWT_SECRET = "dev-jwt-secret-change-me"
WEAK_SECRETS = (DEV_JWT_SECRET, "dev-secret-change-me", "secret123")
MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 24


def is_weak_secret(secret: Optional[str]) -> bool:
    return not secret or secret in WEAK_SECRETS or len(secret) < MIN_SECRET_LENGTH


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against a stored bcrypt hash; bad hashes never match."""
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_jwt_secret_key() -> str:
    """
    Signing key for access tokens.

    Raises:
        ValueError: in production when ``JWT_SECRET_KEY`` is missing, a
            development default or shorter than 32 characters
    """
    secret = os.getenv("JWT_SECRET_KEY", DEV_JWT_SECRET)
    if os.getenv("FLASK_ENV") == "production" and is_weak_secret(secret):
        raise ValueError(
            f"JWT_SECRET_KEY must be a non-default secret of at least "
            f"{MIN_SECRET_LENGTH} characters in production"
        )
    return secret


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    claims = dict(data)
    claims["exp"] = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=JWT_EXPIRATION_HOURS)
    )
    return jwt.encode(claims, get_jwt_secret_key(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the claims of a valid token, or None if it is invalid or expired."""
    try:
        return jwt.decode(token, get_jwt_secret_key(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError:
        return None


def create_user_token(user_id: str, email: str) -> str:
    return create_access_token({"sub": str(user_id), "email": email, "type": "access"})


def get_user_from_token(token: str) -> Optional[Dict[str, Any]]:
    """``{"user_id", "email"}`` from a token that carries both claims."""
    claims = decode_access_token(token)
    if not claims or claims.get("sub") is None or claims.get("email") is None:
        return None
    return {"user_id": str(claims["sub"]), "email": claims["email"]}
