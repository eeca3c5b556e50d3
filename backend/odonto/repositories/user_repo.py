from typing import Optional

from odonto.db.base import User as DbUser
from odonto.domain.entities import User as DomainUser
from odonto.domain.interfaces import IUserRepository


class UserRepository(IUserRepository):
    """Persistence for staff accounts."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, user_id: str) -> Optional[DomainUser]:
        db_user = self.db.query(DbUser).filter_by(id=user_id).first()
        return self._to_domain(db_user) if db_user else None

    def get_by_email(self, email: str) -> Optional[DomainUser]:
        normalized = (email or "").strip().lower()
        db_user = self.db.query(DbUser).filter_by(email=normalized).first()
        return self._to_domain(db_user) if db_user else None

    def create(self, user: DomainUser) -> DomainUser:
        db_user = DbUser(
            id=user.id,
            email=user.email,
            name=user.name,
            password_hash=user.password_hash,
            active_flag=user.is_active,
            created_at=user.created_at,
        )
        self.db.add(db_user)
        self.db.commit()
        self.db.refresh(db_user)
        return self._to_domain(db_user)

    def _to_domain(self, db_user: DbUser) -> DomainUser:
        return DomainUser(
            id=db_user.id,
            email=db_user.email,
            name=db_user.name,
            password_hash=db_user.password_hash,
            is_active=bool(db_user.active_flag),
            created_at=db_user.created_at,
            updated_at=db_user.updated_at or db_user.created_at,
        )
