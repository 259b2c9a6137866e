from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, JSONType


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (
        CheckConstraint(
            "type IN ('credit_purchase','subscription','tip','message_unlock')",
            name="type",
        ),
        CheckConstraint(
            "status IN ('pending','processing','completed','failed')",
            name="status",
        ),
        CheckConstraint("source IN ('user','auto_topup','system')", name="source"),
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("tokens_amount >= 0", name="tokens_non_negative"),
        CheckConstraint("bonus_tokens >= 0", name="bonus_non_negative"),
        Index("idx_payments_user_created", "user_id", "created_at"),
        Index("idx_payments_status_created", "status", "created_at"),
        Index("idx_payments_user_source_status", "user_id", "source", "status"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id"), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, server_default=text("'USD'"))
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    source: Mapped[str] = mapped_column(String(16), nullable=False, default="user")
    provider: Mapped[str] = mapped_column(String(32), nullable=False)
    external_payment_id: Mapped[str | None] = mapped_column(String(128), unique=True, nullable=True)
    package_id: Mapped[str | None] = mapped_column(String(32), nullable=True)
    tier_id: Mapped[str | None] = mapped_column(String(16), nullable=True)
    payment_method_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    tokens_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    bonus_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    checkout_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    raw_provider_payload: Mapped[dict[str, object]] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
