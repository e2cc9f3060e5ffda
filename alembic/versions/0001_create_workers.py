"""create workers table

Revision ID: 0001_create_workers
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "0001_create_workers"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

worker_status = sa.Enum("Active", "Busy", name="worker_status")


def upgrade() -> None:
    op.create_table(
        "workers",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("photo_url", sa.Text(), nullable=False),
        sa.Column("profession", sa.String(200), nullable=False),
        sa.Column("experience", sa.Float(), nullable=False),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("status", worker_status, nullable=False, server_default="Active"),
        sa.Column("click_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("plan_type", sa.String(50), nullable=True),
        sa.Column("plan_limit", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("email", name="uq_workers_email"),
    )
    op.create_index("ix_workers_phone", "workers", ["phone"])
    op.create_index("ix_workers_profession", "workers", ["profession"])
    op.create_index("ix_workers_lat_lon", "workers", ["latitude", "longitude"])


def downgrade() -> None:
    op.drop_index("ix_workers_lat_lon", table_name="workers")
    op.drop_index("ix_workers_profession", table_name="workers")
    op.drop_index("ix_workers_phone", table_name="workers")
    op.drop_table("workers")
    worker_status.drop(op.get_bind(), checkfirst=True)
