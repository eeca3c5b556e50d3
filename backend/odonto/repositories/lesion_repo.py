from typing import List, Optional

from sqlalchemy import func

from odonto.core.exceptions import EntityNotFoundException
from odonto.db.base import Lesion as DbLesion
from odonto.domain.entities import Lesion as DomainLesion
from odonto.domain.interfaces import ILesionRepository


class LesionRepository(ILesionRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, lesion_id: str) -> Optional[DomainLesion]:
        row = self.db.query(DbLesion).filter_by(id=lesion_id).first()
        return self._to_domain(row) if row else None

    def get_all(self) -> List[DomainLesion]:
        rows = self.db.query(DbLesion).order_by(DbLesion.name).all()
        return [self._to_domain(row) for row in rows]

    def get_by_category(self, category: str) -> List[DomainLesion]:
        needle = (category or "").strip().lower()
        rows = (
            self.db.query(DbLesion)
            .filter(func.lower(DbLesion.category) == needle)
            .order_by(DbLesion.name)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def get_active(self) -> List[DomainLesion]:
        rows = (
            self.db.query(DbLesion)
            .filter(DbLesion.is_active.is_(True))
            .order_by(DbLesion.name)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def get_categories(self) -> List[str]:
        rows = (
            self.db.query(DbLesion.category)
            .filter(DbLesion.category != "")
            .distinct()
            .order_by(DbLesion.category)
            .all()
        )
        return [category for (category,) in rows]

    def create(self, lesion: DomainLesion) -> DomainLesion:
        row = DbLesion(id=lesion.id, created_at=lesion.created_at)
        self._apply(row, lesion)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def update(self, lesion: DomainLesion) -> DomainLesion:
        row = self.db.query(DbLesion).filter_by(id=lesion.id).first()
        if not row:
            raise EntityNotFoundException("Lesion", lesion.id)
        self._apply(row, lesion)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def delete(self, lesion_id: str) -> bool:
        row = self.db.query(DbLesion).filter_by(id=lesion_id).first()
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    @staticmethod
    def _apply(row: DbLesion, lesion: DomainLesion) -> None:
        row.name = lesion.name
        row.description = lesion.description
        row.category = lesion.category
        row.is_active = lesion.is_active
        row.updated_at = lesion.updated_at

    def _to_domain(self, row: DbLesion) -> DomainLesion:
        return DomainLesion(
            id=row.id,
            name=row.name,
            description=row.description or "",
            category=row.category or "",
            is_active=bool(row.is_active),
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
        )
