from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="balance_non_negative"),
        CheckConstraint(
            "subscription_status IN ('free','basic','premium','vip')",
            name="subscription_status",
        ),
        CheckConstraint("role IN ('user','admin')", name="role"),
        Index("idx_users_subscription_expiry", "subscription_expiry"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    email: Mapped[str | None] = mapped_column(Text, unique=True, nullable=True)
    balance: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        nullable=False,
        default=Decimal("0"),
        server_default=text("0"),
    )
    subscription_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="free",
        server_default=text("'free'"),
    )
    subscription_expiry: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    role: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="user",
        server_default=text("'user'"),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )
