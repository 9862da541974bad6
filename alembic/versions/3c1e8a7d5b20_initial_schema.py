"""initial schema

Revision ID: 3c1e8a7d5b20
Revises:
Create Date: 2026-10-16

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "3c1e8a7d5b20"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "identity_user",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=True),
        sa.Column("apartment_number", sa.String(length=20), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("password_hash", sa.String(length=200), nullable=False),
        sa.Column("role", sa.String(length=8), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )
    op.create_index("ix_identity_user_email", "identity_user", ["email"], unique=True)
    op.create_index("ix_identity_user_role", "identity_user", ["role"])

    op.create_table(
        "residents_resident",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("apartment_number", sa.String(length=20), nullable=True),
        sa.Column("payment_code", sa.String(length=50), nullable=True),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column(
            "linked_profile_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("identity_user.id"),
            nullable=True,
        ),
    )
    op.create_index(
        "ix_residents_resident_apartment_number", "residents_resident", ["apartment_number"]
    )
    op.create_index("ix_residents_resident_payment_code", "residents_resident", ["payment_code"])

    op.create_table(
        "slips_upload_batch",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column(
            "created_by", sa.Uuid(as_uuid=True), sa.ForeignKey("identity_user.id"), nullable=True
        ),
        sa.Column("file_name", sa.String(length=500), nullable=True),
        sa.Column("file_type", sa.String(length=20), nullable=False),
        sa.Column("period_month", sa.Date(), nullable=False),
        sa.Column("slip_count", sa.Integer(), nullable=False),
        sa.Column("matched_count", sa.Integer(), nullable=False),
        sa.Column("pending_count", sa.Integer(), nullable=False),
        sa.Column("extraction_method", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=9), nullable=False),
    )

    op.create_table(
        "slips_payment_slip",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column(
            "upload_batch_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("slips_upload_batch.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "uploaded_by", sa.Uuid(as_uuid=True), sa.ForeignKey("identity_user.id"), nullable=True
        ),
        sa.Column("invoice_number", sa.String(length=100), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("period_month", sa.Date(), nullable=False),
        sa.Column("buyer_name", sa.String(length=300), nullable=False),
        sa.Column("apartment_address", sa.String(length=500), nullable=False),
        sa.Column("apartment_number", sa.String(length=20), nullable=False),
        sa.Column("payment_code", sa.String(length=50), nullable=True),
        sa.Column("previous_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("payments_received", sa.Numeric(12, 2), nullable=False),
        sa.Column("balance", sa.Numeric(12, 2), nullable=False),
        sa.Column("accrued_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("total_due", sa.Numeric(12, 2), nullable=False),
        sa.Column("line_items", sa.JSON(), nullable=False),
        sa.Column("utility_readings", sa.JSON(), nullable=False),
        sa.Column("degraded_fields", sa.JSON(), nullable=False),
        sa.Column("extraction_method", sa.String(length=20), nullable=False),
        sa.Column("pdf_url", sa.Text(), nullable=True),
        sa.Column("pdf_file_name", sa.String(length=500), nullable=True),
        sa.Column(
            "resident_id",
            sa.Uuid(as_uuid=True),
            sa.ForeignKey("residents_resident.id"),
            nullable=True,
        ),
        sa.Column(
            "profile_id", sa.Uuid(as_uuid=True), sa.ForeignKey("identity_user.id"), nullable=True
        ),
        sa.Column("assignment_status", sa.String(length=12), nullable=False),
        sa.Column("matched_by", sa.String(length=30), nullable=True),
        sa.Column("match_reason", sa.Text(), nullable=True),
    )
    for column in (
        "upload_batch_id",
        "invoice_number",
        "period_month",
        "apartment_number",
        "resident_id",
        "assignment_status",
    ):
        op.create_index(f"ix_slips_payment_slip_{column}", "slips_payment_slip", [column])

    op.create_table(
        "vendors_recognition_pattern",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        *_timestamps(),
        sa.Column("pattern_hash", sa.String(length=64), nullable=False),
        sa.Column("vendor_name", sa.String(length=300), nullable=False),
        sa.Column("significant_token", sa.String(length=100), nullable=True),
        sa.Column("vendor_id", sa.String(length=64), nullable=True),
        sa.Column("cost_category_id", sa.String(length=64), nullable=True),
        sa.Column("recognition_count", sa.Integer(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_vendors_recognition_pattern_pattern_hash",
        "vendors_recognition_pattern",
        ["pattern_hash"],
        unique=True,
    )
    op.create_index(
        "ix_vendors_recognition_pattern_recognition_count",
        "vendors_recognition_pattern",
        ["recognition_count"],
    )


def downgrade() -> None:
    op.drop_table("vendors_recognition_pattern")
    op.drop_table("slips_payment_slip")
    op.drop_table("slips_upload_batch")
    op.drop_table("residents_resident")
    op.drop_table("identity_user")
