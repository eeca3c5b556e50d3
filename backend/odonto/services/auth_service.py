import logging
from typing import Optional

from odonto.core.exceptions import (
    DuplicateEntityException,
    UnauthorizedException,
    ValidationException,
)
from odonto.core.security import create_user_token, hash_password, verify_password
from odonto.domain.entities import User as DomainUser
from odonto.domain.interfaces import IUserRepository
from odonto.schemas.dtos import LoginRequest, UserResponse

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Staff authentication: password check and token issue."""

    def __init__(self, repo: IUserRepository) -> None:
        self.repo = repo

    def authenticate(self, request: LoginRequest) -> dict:
        """Return ``{"access_token", "token_type", "user"}`` for valid credentials.

        Unknown email, wrong password and inactive accounts all answer with
        the same error so callers cannot tell which emails exist.
        """
        request.validate()
        user = self.repo.get_by_email(request.email)
        if (
            user is None
            or not user.is_active
            or not verify_password(request.password, user.password_hash or "")
        ):
            logger.warning(
                "Failed login attempt",
                extra={"context": {"email_domain": request.email.split("@")[-1]}},
            )
            raise UnauthorizedException("Invalid email or password")

        logger.info("User logged in", extra={"context": {"user_id": user.id}})
        return {
            "access_token": create_user_token(user.id, user.email),
            "token_type": "Bearer",
            "user": UserResponse.from_domain(user).to_dict(),
        }

    def create_user(self, email: str, password: str, name: str) -> UserResponse:
        if len(password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationException(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                ["password"],
            )
        if self.repo.get_by_email(email) is not None:
            raise DuplicateEntityException(f"User with email {email} already exists")
        user = DomainUser(
            email=email, name=name, password_hash=hash_password(password), is_active=True
        )
        created = self.repo.create(user)
        logger.info("User created", extra={"context": {"user_id": created.id}})
        return UserResponse.from_domain(created)

    def get_user(self, user_id: str) -> Optional[UserResponse]:
        user = self.repo.get_by_id(user_id)
        return UserResponse.from_domain(user) if user else None
