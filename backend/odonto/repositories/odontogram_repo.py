from typing import Optional

from odonto.core.exceptions import EntityNotFoundException
from odonto.db.base import Odontogram as DbOdontogram
from odonto.domain.entities import Odontogram as DomainOdontogram
from odonto.domain.entities import ToothRecord
from odonto.domain.interfaces import IOdontogramRepository


class OdontogramRepository(IOdontogramRepository):
    """Odontogram persistence; the tooth records are one JSON document."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, odontogram_id: str) -> Optional[DomainOdontogram]:
        row = self.db.query(DbOdontogram).filter_by(id=odontogram_id).first()
        return self._to_domain(row) if row else None

    def get_by_patient_id(self, patient_id: str) -> Optional[DomainOdontogram]:
        row = self.db.query(DbOdontogram).filter_by(patient_id=patient_id).first()
        return self._to_domain(row) if row else None

    def create(self, odontogram: DomainOdontogram) -> DomainOdontogram:
        row = DbOdontogram(
            id=odontogram.id,
            patient_id=odontogram.patient_id,
            created_at=odontogram.created_at,
        )
        self._apply(row, odontogram)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    def update(self, odontogram: DomainOdontogram) -> DomainOdontogram:
        row = self.db.query(DbOdontogram).filter_by(id=odontogram.id).first()
        if not row:
            raise EntityNotFoundException("Odontogram", odontogram.id)
        self._apply(row, odontogram)
        self.db.commit()
        self.db.refresh(row)
        return self._to_domain(row)

    @staticmethod
    def _apply(row: DbOdontogram, odontogram: DomainOdontogram) -> None:
        # Assign a fresh list so SQLAlchemy sees the JSON column as changed
        row.tooth_records = [
            record.to_dict() for _, record in sorted(odontogram.tooth_records.items())
        ]
        row.updated_at = odontogram.updated_at

    def _to_domain(self, row: DbOdontogram) -> DomainOdontogram:
        records = [ToothRecord.from_dict(item) for item in row.tooth_records or []]
        return DomainOdontogram(
            id=row.id,
            patient_id=row.patient_id,
            tooth_records={r.tooth_number.value: r for r in records},
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
        )
