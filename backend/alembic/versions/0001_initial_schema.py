"""Initial schema: printers, print jobs and maintenance records.

Revision ID: 0001
Revises:
Create Date: 2026-10-12

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- print_jobs ---
    op.create_table(
        "print_jobs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("printer", sa.String(100), nullable=False, server_default="Any"),
        sa.Column("material", sa.String(20), nullable=False),
        sa.Column("estimated_time", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Queued"),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("start_time", sa.DateTime, nullable=True),
        sa.Column("end_time", sa.DateTime, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_print_jobs_name", "print_jobs", ["name"])
    op.create_index("ix_print_jobs_printer", "print_jobs", ["printer"])
    op.create_index("ix_print_jobs_status", "print_jobs", ["status"])

    # --- printers ---
    op.create_table(
        "printers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Idle"),
        sa.Column("progress", sa.Integer, nullable=False, server_default="0"),
        sa.Column("time_left", sa.String(20), nullable=False, server_default="0h 0m"),
        sa.Column("bed_temperature", sa.Float, nullable=False, server_default="25.0"),
        sa.Column("nozzle_temperature", sa.Float, nullable=False, server_default="25.0"),
        sa.Column("job", sa.String(200), nullable=False, server_default="None"),
        sa.Column("material", sa.String(20), nullable=False, server_default="None"),
        sa.Column("start_time", sa.String(40), nullable=False, server_default="N/A"),
        sa.Column("estimated_end", sa.String(40), nullable=False, server_default="N/A"),
        sa.Column(
            "current_job_id",
            sa.Integer,
            sa.ForeignKey("print_jobs.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("last_maintenance", sa.DateTime, nullable=False),
        sa.Column("next_maintenance", sa.DateTime, nullable=False),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_printers_name", "printers", ["name"], unique=True)

    # --- maintenance_records ---
    op.create_table(
        "maintenance_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "printer_id",
            sa.Integer,
            sa.ForeignKey("printers.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("date", sa.DateTime, nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("technician", sa.String(100), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index("ix_maintenance_records_printer_id", "maintenance_records", ["printer_id"])


def downgrade() -> None:
    op.drop_table("maintenance_records")
    op.drop_table("printers")
    op.drop_table("print_jobs")
