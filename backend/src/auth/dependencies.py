"""
Authentication and authorization dependencies for FastAPI.

Provides dependency injection functions for user authentication and
role-based access control.
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from core.database import get_db
from core.constants import ROLE_ADMIN, ROLE_EMPLOYEE
from services.jwt_service import jwt_service, TokenPayload
from models import User

logger = logging.getLogger(__name__)


class UserContext:
    """Authenticated user context extracted from JWT token."""

    def __init__(
        self,
        user_id: int,
        email: str,
        name: str,
        role: str,
        employee_role: Optional[str] = None,
        is_staff: bool = False
    ):
        self.user_id = user_id
        self.email = email
        self.name = name
        self.role = role  # "user", "employee" or "admin"
        self.employee_role = employee_role
        self.is_staff = is_staff  # Admins and booking staff (receptionist, manager)

    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def is_employee(self) -> bool:
        return self.role == ROLE_EMPLOYEE

    def __repr__(self) -> str:
        return f"UserContext(user_id={self.user_id}, email='{self.email}', role='{self.role}')"


# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_payload(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenPayload]:
    """Extract and validate JWT token payload."""
    if not credentials:
        return None

    token = credentials.credentials
    payload = jwt_service.verify_token(token)

    if not payload:
        return None

    return payload


def get_current_user(
    payload: Optional[TokenPayload] = Depends(get_token_payload),
    db: Session = Depends(get_db)
) -> UserContext:
    """Get authenticated user context from JWT token."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication credentials not provided"
        )

    try:
        user_id = int(payload.sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject"
        )

    # Role comes from the database, not the token, so demotions apply immediately
    user = db.get(User, user_id)
    if not user or user.email != payload.email.lower():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is deactivated"
        )

    return UserContext(
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        employee_role=user.employee_role,
        is_staff=user.is_staff
    )


# Role-based authorization dependencies
def require_staff(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require booking staff (receptionist, manager) or admin."""
    if not user.is_staff:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Staff access required"
        )
    return user


def require_employee(user: UserContext = Depends(get_current_user)) -> UserContext:
    """Require an employee account (any role tag)."""
    if not user.is_employee():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Employee access required"
        )
    return user
