"""Create patients table

Revision ID: 3f2a9c1d7b84
Revises:
Create Date: 2026-10-18 09:12:40.118204

"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b84"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

patient_status = sa.Enum(
    "pending", "confirmed", "cancelled", name="patient_status", native_enum=True
)


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "patients",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.VARCHAR(length=200), nullable=False),
        sa.Column("email", sa.VARCHAR(), nullable=True),
        sa.Column("phone", sa.VARCHAR(), nullable=True),
        sa.Column("age", sa.INTEGER(), nullable=True),
        sa.Column("gender", sa.VARCHAR(), nullable=True),
        sa.Column("address", sa.VARCHAR(length=500), nullable=True),
        sa.Column("source", sa.VARCHAR(), nullable=False),
        sa.Column(
            "status", patient_status, nullable=False, server_default="pending"
        ),
        sa.Column("registered_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    # Unique indexes: the storage-level backstop for phone/email dedupe
    op.create_index("ix_patients_email", "patients", ["email"], unique=True)
    op.create_index("ix_patients_phone", "patients", ["phone"], unique=True)
    op.create_index("ix_patients_registered_at", "patients", ["registered_at"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_patients_registered_at", table_name="patients")
    op.drop_index("ix_patients_phone", table_name="patients")
    op.drop_index("ix_patients_email", table_name="patients")
    op.drop_table("patients")
    patient_status.drop(op.get_bind(), checkfirst=True)
