"""Relational backend built on SQLModel"""

import logging
from datetime import timezone

from sqlalchemy import or_, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, SQLModel, select

from patient_intake.backends.base import (
    DuplicateRecordError,
    LookupPredicate,
    StorageError,
)
from patient_intake.models.database import create_db_engine
from patient_intake.models.patient import PatientRecord
from patient_intake.models.patient_row import PatientRow

logger = logging.getLogger(__name__)


class SqlPatientStore:
    """Stores patients in the `patients` table.

    Unique constraints on email and phone back up the application-level
    duplicate check when two submissions race.
    """

    name = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_tables(self) -> None:
        """Create the patients table if missing. Production uses Alembic."""
        SQLModel.metadata.create_all(self.engine, tables=[PatientRow.__table__])

    def create(self, record: PatientRecord) -> str:
        row = PatientRow(
            name=record.name,
            email=record.email,
            phone=record.phone,
            age=record.age,
            gender=record.gender,
            address=record.address,
            source=record.source,
            status=record.status,
            registered_at=record.registered_at,
        )

        with Session(self.engine) as session:
            try:
                session.add(row)
                session.commit()
                session.refresh(row)
            except IntegrityError as e:
                session.rollback()
                logger.warning(f"Rejected duplicate patient row: {type(e).__name__}")
                raise DuplicateRecordError(
                    "A patient with this phone or email is already registered"
                ) from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.error(f"Error creating patient: {type(e).__name__}: {e}")
                raise StorageError("Database write failed") from e

            logger.info(f"Created patient {row.id}")
            return str(row.id)

    def find(self, predicate: LookupPredicate) -> list[PatientRecord]:
        if predicate.is_empty():
            return []

        conditions = []
        if predicate.phone:
            conditions.append(PatientRow.phone == predicate.phone)
        if predicate.email:
            conditions.append(PatientRow.email == predicate.email)

        stmt = select(PatientRow).where(or_(*conditions))
        return self._query(stmt)

    def list_all(self) -> list[PatientRecord]:
        stmt = select(PatientRow).order_by(PatientRow.registered_at.desc())
        return self._query(stmt)

    def is_configured(self) -> bool:
        return True

    def health_check(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StorageError("Database is unreachable") from e

    def close(self) -> None:
        self.engine.dispose()

    def _query(self, stmt) -> list[PatientRecord]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(stmt).all()
                return [_row_to_record(row) for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error querying patients: {type(e).__name__}: {e}")
            raise StorageError("Database query failed") from e


def _row_to_record(row: PatientRow) -> PatientRecord:
    registered_at = row.registered_at
    # SQLite hands back naive datetimes; everything is stored in UTC.
    if registered_at.tzinfo is None:
        registered_at = registered_at.replace(tzinfo=timezone.utc)
    return PatientRecord(
        id=str(row.id),
        name=row.name,
        email=row.email,
        phone=row.phone,
        age=row.age,
        gender=row.gender,
        address=row.address,
        source=row.source,
        status=row.status,
        registered_at=registered_at,
    )


def open_sql_store(database_url: str) -> SqlPatientStore:
    return SqlPatientStore(create_db_engine(database_url))
