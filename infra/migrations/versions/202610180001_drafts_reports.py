"""drafts and reports tables

Revision ID: 202610180001
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610180001"
down_revision = None
branch_labels = None
depends_on = None

TEXT_COLUMNS = (
    "report_number",
    "district",
    "cap_practitioner",
    "address_of_infraction",
    "nearest_landmark",
    "gps_coordinates",
    "date_of_identification",
    "number_of_floors",
    "stage_of_work",
    "observations_rich_text",
    "executive_summary",
    "site_location",
    "type_of_building",
    "recommendation_status",
    "challenges_and_limitations",
)


def _record_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.BigInteger(), autoincrement=False, nullable=False),
        *[sa.Column(name, sa.String(), nullable=True) for name in TEXT_COLUMNS],
        sa.Column("state_of_building", sa.JSON(), nullable=False),
        sa.Column("observations", sa.JSON(), nullable=False),
        sa.Column("photos", sa.JSON(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "drafts",
        *_record_columns(),
        sa.Column("saved_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_drafts_report_number", "drafts", ["report_number"])
    op.create_index("ix_drafts_saved_at", "drafts", ["saved_at"])

    op.create_table(
        "reports",
        *_record_columns(),
        sa.Column("generated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reports_report_number", "reports", ["report_number"])
    op.create_index("ix_reports_generated_at", "reports", ["generated_at"])


def downgrade() -> None:
    op.drop_index("ix_reports_generated_at", table_name="reports")
    op.drop_index("ix_reports_report_number", table_name="reports")
    op.drop_table("reports")
    op.drop_index("ix_drafts_saved_at", table_name="drafts")
    op.drop_index("ix_drafts_report_number", table_name="drafts")
    op.drop_table("drafts")
