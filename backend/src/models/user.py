"""
Unified User model for customers, employees and administrators.

Customers (role "user") book appointments; employees (role "employee") carry a
role tag such as "receptionist" or "therapist" and a branch affiliation used
for eligibility matching; admins manage everything.
"""

from typing import Optional
from datetime import datetime
from sqlalchemy import String, TIMESTAMP, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from core.config import BOOKING_STAFF_ROLES
from core.constants import ROLE_ADMIN, ROLE_EMPLOYEE
from core.database import Base
from utils.phone_utils import normalize_phone_optional


class User(Base):
    """Single table for every person the system knows about."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    name: Mapped[str] = mapped_column(String(255))

    # Customer resolution keys: phone first, then email
    email: Mapped[str] = mapped_column(String(255), unique=True)
    """Lower-cased, globally unique email."""

    phone: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    """Globally unique phone number. Exactly one customer record per phone."""

    password_hash: Mapped[str] = mapped_column(String(255))
    """bcrypt hash. Walk-in customers get a random placeholder credential."""

    role: Mapped[str] = mapped_column(String(20), default="user")
    """One of 'user', 'employee', 'admin'."""

    employee_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    """Role tag for employees (e.g., 'receptionist', 'manager', 'therapist')."""

    employee_code: Mapped[Optional[str]] = mapped_column(String(20), unique=True, nullable=True)

    branch_id: Mapped[Optional[int]] = mapped_column(ForeignKey("branches.id"), nullable=True)
    """Working location for employees."""

    is_email_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    branch = relationship("Branch", back_populates="employees")

    __table_args__ = (
        Index('idx_users_role_employee_role', 'role', 'employee_role'),
    )

    @validates("phone")
    def _normalize_phone(self, key: str, value: Optional[str]) -> Optional[str]:
        return normalize_phone_optional(value)

    @property
    def is_employee(self) -> bool:
        return self.role == ROLE_EMPLOYEE

    @property
    def is_staff(self) -> bool:
        """Admins, and employees whose role tag is in BOOKING_STAFF_ROLES."""
        if self.role == ROLE_ADMIN:
            return True
        return self.is_employee and (self.employee_role or "").lower() in BOOKING_STAFF_ROLES

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
