from typing import List, Optional

from sqlalchemy import func

from odonto.core.exceptions import EntityNotFoundException
from odonto.db.base import Treatment as DbTreatment
from odonto.domain.entities import Treatment as DomainTreatment
from odonto.domain.interfaces import ITreatmentRepository
from odonto.domain.value_objects import Money


class TreatmentRepository(ITreatmentRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, treatment_id: str) -> Optional[DomainTreatment]:
        row = self.db.query(DbTreatment).filter_by(id=treatment_id).first()
        return self._to_domain(row) if row else None

    def get_all(self) -> List[DomainTreatment]:
        rows = self.db.query(DbTreatment).order_by(DbTreatment.name).all()
        return [self._to_domain(row) for row in rows]

    def get_by_category(self, category: str) -> List[DomainTreatment]:
        needle = (category or "").strip().lower()
        rows = (
            self.db.query(DbTreatment)
            .filter(func.lower(DbTreatment.category) == needle)
            .order_by(DbTreatment.name)
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def create(self, treatment: DomainTreatment) -> DomainTreatment:
        row = DbTreatment(id=treatment.id, created_at=treatment.created_at)
        self._apply(row, treatment)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def update(self, treatment: DomainTreatment) -> DomainTreatment:
        row = self.db.query(DbTreatment).filter_by(id=treatment.id).first()
        if not row:
            raise EntityNotFoundException("Treatment", treatment.id)
        self._apply(row, treatment)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def delete(self, treatment_id: str) -> bool:
        row = self.db.query(DbTreatment).filter_by(id=treatment_id).first()
        if not row:
            return False
        self.db.delete(row)
        self.db.commit()
        return True

    @staticmethod
    def _apply(row: DbTreatment, treatment: DomainTreatment) -> None:
        row.name = treatment.name
        row.description = treatment.description
        row.price_amount = treatment.price.amount
        row.price_currency = treatment.price.currency
        row.estimated_duration_minutes = treatment.estimated_duration_minutes
        row.category = treatment.category
        row.updated_at = treatment.updated_at

    def _to_domain(self, row: DbTreatment) -> DomainTreatment:
        return DomainTreatment(
            id=row.id,
            name=row.name,
            description=row.description or "",
            price=Money(row.price_amount, row.price_currency),
            estimated_duration_minutes=row.estimated_duration_minutes,
            category=row.category or "",
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
        )
