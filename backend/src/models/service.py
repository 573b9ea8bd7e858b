"""
Bookable service model (e.g., "Swedish Massage 60 min").
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from sqlalchemy import String, Text, TIMESTAMP, Boolean, Integer, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Service(Base):
    """A service offered by the business, owned by one category."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), index=True)

    name: Mapped[str] = mapped_column(String(255))

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    duration_minutes: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    """Default duration used when a booking doesn't override it."""

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    category = relationship("Category", back_populates="services")

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}')>"
