from __future__ import annotations

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import JSON, Date, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bendrija.core.models import Base, Money, Timestamped, UUIDPrimaryKey
from bendrija.modules.slips.matching import AssignmentStatus


class UploadBatchStatus(str, enum.Enum):
    COMPLETED = "COMPLETED"


class UploadBatch(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "slips_upload_batch"

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), nullable=True
    )
    file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    file_type: Mapped[str] = mapped_column(String(20))
    period_month: Mapped[date] = mapped_column(Date)
    slip_count: Mapped[int] = mapped_column(Integer, default=0)
    matched_count: Mapped[int] = mapped_column(Integer, default=0)
    pending_count: Mapped[int] = mapped_column(Integer, default=0)
    extraction_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[UploadBatchStatus] = mapped_column(
        Enum(UploadBatchStatus, native_enum=False), default=UploadBatchStatus.COMPLETED
    )

    slips = relationship(
        "PaymentSlip",
        back_populates="upload_batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PaymentSlip(UUIDPrimaryKey, Timestamped, Base):
    __tablename__ = "slips_payment_slip"

    upload_batch_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("slips_upload_batch.id", ondelete="CASCADE"),
        index=True,
    )
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), nullable=True
    )

    invoice_number: Mapped[str] = mapped_column(String(100), index=True)
    invoice_date: Mapped[date] = mapped_column(Date)
    due_date: Mapped[date] = mapped_column(Date)
    period_month: Mapped[date] = mapped_column(Date, index=True)
    buyer_name: Mapped[str] = mapped_column(String(300), default="")
    apartment_address: Mapped[str] = mapped_column(String(500), default="")
    apartment_number: Mapped[str] = mapped_column(String(20), index=True)
    payment_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    previous_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    payments_received: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    accrued_amount: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))
    total_due: Mapped[Decimal] = mapped_column(Money, default=Decimal("0"))

    line_items: Mapped[list] = mapped_column(JSON, default=list)
    utility_readings: Mapped[dict] = mapped_column(JSON, default=dict)
    degraded_fields: Mapped[list] = mapped_column(JSON, default=list)
    extraction_method: Mapped[str] = mapped_column(String(20), default="regex")

    pdf_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    pdf_file_name: Mapped[str | None] = mapped_column(String(500), nullable=True)

    resident_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("residents_resident.id"), nullable=True, index=True
    )
    profile_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("identity_user.id"), nullable=True
    )
    assignment_status: Mapped[AssignmentStatus] = mapped_column(
        Enum(AssignmentStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        index=True,
    )
    matched_by: Mapped[str | None] = mapped_column(String(30), nullable=True)
    match_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    upload_batch = relationship("UploadBatch", back_populates="slips")
