from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Float, Integer, Numeric, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.models.base import Base, BigIntPK


class Persona(Base):
    __tablename__ = "personas"
    __table_args__ = (
        CheckConstraint(
            "lock_message_chance >= 0 AND lock_message_chance <= 1",
            name="lock_message_chance",
        ),
        CheckConstraint("lock_message_price > 0", name="lock_message_price_positive"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    dominance_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_message_chance: Mapped[float] = mapped_column(Float, nullable=False, default=0.05)
    lock_message_price: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0.50"),
    )
    is_exclusive: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
