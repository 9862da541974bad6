from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from bendrija.core.models import Base, Timestamped, UUIDPrimaryKey, utcnow


class RecognitionPattern(UUIDPrimaryKey, Timestamped, Base):
    """Learned vendor name -> (vendor, cost category) association shared by all uploads."""

    __tablename__ = "vendors_recognition_pattern"

    # sha256 of the normalized vendor name.
    pattern_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    vendor_name: Mapped[str] = mapped_column(String(300))
    significant_token: Mapped[str | None] = mapped_column(String(100), nullable=True)
    vendor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cost_category_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    recognition_count: Mapped[int] = mapped_column(Integer, default=1, index=True)
    last_used_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
