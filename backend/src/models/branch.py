"""
Branch model representing a physical business location.

Rooms and employees are each scoped to exactly one branch.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, TIMESTAMP, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base


class Branch(Base):
    """Physical spa/salon location."""

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the branch."""

    name: Mapped[str] = mapped_column(String(255))
    """Display name of the branch (e.g., "Andheri")."""

    code: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)
    """Short unique branch code (e.g., "PRE001")."""

    address: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    rooms = relationship("Room", back_populates="branch")
    employees = relationship("User", back_populates="branch")

    def __repr__(self) -> str:
        return f"<Branch(id={self.id}, name='{self.name}')>"
