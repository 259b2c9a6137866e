from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base


class Subscription(Base):
    __tablename__ = "subscriptions"
    __table_args__ = (
        CheckConstraint("tier IN ('basic','premium','vip')", name="tier"),
        CheckConstraint("status IN ('active','cancelled','expired')", name="status"),
        CheckConstraint("end_date > start_date", name="period"),
        CheckConstraint(
            "discount_multiplier > 0 AND discount_multiplier <= 1",
            name="discount_multiplier",
        ),
        Index("idx_subscriptions_user_start", "user_id", "start_date"),
        Index("idx_subscriptions_status_end", "status", "end_date"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    payment_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("payments.id"), unique=True, nullable=False)
    tier: Mapped[str] = mapped_column(String(16), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    auto_renew: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=text("true"),
    )
    bonus_tokens_granted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_multiplier: Mapped[Decimal] = mapped_column(Numeric(4, 3), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
