"""
Service category model.

A category decides two booking rules for every service it contains: whether a
physical room must be reserved, and which employee role tag may perform it.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Text, TIMESTAMP, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Category(Base):
    """Service category (e.g., "Massage", "Hair", "Nails")."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    name: Mapped[str] = mapped_column(String(255), unique=True)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_employee_role: Mapped[str] = mapped_column(String(50))
    """Employee role tag required to perform services in this category."""

    requires_physical_resource: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    """
    True when bookings must reserve a treatment room.

    Configured per category rather than inferred from the category name.
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    services = relationship("Service", back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
