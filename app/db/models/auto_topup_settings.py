from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK


class AutoTopupSettings(Base):
    __tablename__ = "auto_topup_settings"
    __table_args__ = (
        CheckConstraint("threshold_amount >= 0", name="threshold_non_negative"),
        Index("idx_auto_topup_enabled", "enabled", "id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), unique=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    threshold_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    package_id: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_method_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_topup_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
