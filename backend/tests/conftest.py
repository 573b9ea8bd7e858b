"""
Test configuration and shared fixtures for the spa booking test suite.

Each test gets its own SQLite database file, so tests that commit (every
booking does) and tests that book from several threads stay isolated without
a running PostgreSQL server.
"""

import os
import pytest
from datetime import datetime
from decimal import Decimal
from typing import Generator, Optional
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from core.database import Base
from core.constants import ROLE_ADMIN, ROLE_EMPLOYEE, ROLE_USER, ROOM_STATUS_AVAILABLE
from models import Appointment, Branch, Category, Room, Service, User
from utils.datetime_utils import IST_TZ

# Optional override, e.g. postgresql://localhost/spa_booking_test
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")

# Business clock used by booking tests: bookings on 2024-01-10 are in the future
FIXED_NOW = datetime(2024, 1, 1, 9, 0, tzinfo=IST_TZ)


def ist(year: int, month: int, day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=IST_TZ)


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Fresh database per test with every table created from the models."""
    url = TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'test.db'}"
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, echo=False, connect_args=connect_args)

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    """Session factory configured like SessionLocal."""
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def frozen_clock():
    """Pin the booking service's notion of "now" to FIXED_NOW."""
    with patch("services.booking_service.ist_now", return_value=FIXED_NOW):
        yield FIXED_NOW


# ===== Factories =====

def create_branch(db: Session, name: str, code: str) -> Branch:
    branch = Branch(name=name, code=code)
    db.add(branch)
    db.commit()
    return branch


def create_user(
    db: Session,
    name: str,
    email: str,
    role: str = ROLE_USER,
    employee_role: Optional[str] = None,
    branch: Optional[Branch] = None,
    phone: Optional[str] = None,
    employee_code: Optional[str] = None
) -> User:
    user = User(
        name=name,
        email=email,
        phone=phone,
        password_hash="not-a-real-hash",
        role=role,
        employee_role=employee_role,
        employee_code=employee_code,
        branch_id=branch.id if branch else None,
        is_email_verified=True,
    )
    db.add(user)
    db.commit()
    return user


def create_employee(db: Session, name: str, employee_role: str, branch: Branch, code: str) -> User:
    return create_user(
        db, name, f"{code.lower()}@spa.test", role=ROLE_EMPLOYEE,
        employee_role=employee_role, branch=branch, employee_code=code
    )


def create_category(db: Session, name: str, assigned_employee_role: str, requires_room: bool) -> Category:
    category = Category(
        name=name,
        assigned_employee_role=assigned_employee_role,
        requires_physical_resource=requires_room,
    )
    db.add(category)
    db.commit()
    return category


def create_service(db: Session, category: Category, name: str, price: str, duration_minutes: int = 60) -> Service:
    service = Service(
        category_id=category.id,
        name=name,
        price=Decimal(price),
        duration_minutes=duration_minutes,
    )
    db.add(service)
    db.commit()
    return service


def create_room(
    db: Session,
    room_number: str,
    room_type: str,
    branch: Branch,
    price: str,
    status: str = ROOM_STATUS_AVAILABLE
) -> Room:
    room = Room(
        room_number=room_number,
        room_type=room_type,
        branch_id=branch.id,
        price=Decimal(price),
        capacity=1,
        status=status,
    )
    db.add(room)
    db.commit()
    return room


@pytest.fixture
def spa(db_session):
    """
    Two branches with a massage category (needs a room, performed by
    therapists) and a hair category (no room, performed by stylists).
    """
    central = create_branch(db_session, "Central", "CEN001")
    north = create_branch(db_session, "North", "NOR001")

    massage = create_category(db_session, "Massage", "therapist", requires_room=True)
    hair = create_category(db_session, "Hair", "stylist", requires_room=False)

    swedish = create_service(db_session, massage, "Swedish Massage", "2500.00", duration_minutes=60)
    haircut = create_service(db_session, hair, "Haircut", "800.00", duration_minutes=45)

    gold_central = create_room(db_session, "G101", "Gold", central, "1500.00")
    gold_north = create_room(db_session, "G201", "Gold", north, "1400.00")
    silver_central = create_room(db_session, "S101", "Silver", central, "700.00")
    create_room(db_session, "D101", "Diamond", central, "3000.00", status="Maintenance")

    receptionist = create_employee(db_session, "Riya Front Desk", "receptionist", central, "EMP001")
    therapist_central = create_employee(db_session, "Asha Therapist", "therapist", central, "EMP002")
    therapist_north = create_employee(db_session, "Neel Therapist", "therapist", north, "EMP003")
    stylist_north = create_employee(db_session, "Kiran Stylist", "stylist", north, "EMP004")
    admin = create_user(db_session, "Admin", "admin@spa.test", role=ROLE_ADMIN)
    customer = create_user(db_session, "Meera Customer", "meera@example.com", phone="9876543210")

    return {
        "central": central,
        "north": north,
        "massage": massage,
        "hair": hair,
        "swedish": swedish,
        "haircut": haircut,
        "gold_central": gold_central,
        "gold_north": gold_north,
        "silver_central": silver_central,
        "receptionist": receptionist,
        "therapist_central": therapist_central,
        "therapist_north": therapist_north,
        "stylist_north": stylist_north,
        "admin": admin,
        "customer": customer,
    }


def create_appointment(
    db: Session,
    customer: User,
    service: Service,
    start_time: datetime,
    end_time: datetime,
    room: Optional[Room] = None,
    status: str = "Pending",
    employee: Optional[User] = None,
    payment_method: str = "cash"
) -> Appointment:
    """Insert an appointment row directly, bypassing the booking flow."""
    appointment = Appointment(
        customer_id=customer.id,
        service_id=service.id,
        room_id=room.id if room else None,
        room_type=room.room_type if room else None,
        employee_id=employee.id if employee else None,
        start_time=start_time,
        end_time=end_time,
        status=status,
        payment_status="Cash" if payment_method == "cash" else "Pending",
        payment_method=payment_method,
        service_price=service.price,
        room_price=room.price if room else Decimal("0"),
        total_price=service.price + (room.price if room else Decimal("0")),
        created_by_id=customer.id,
    )
    db.add(appointment)
    db.flush()
    appointment.appointment_code = f"APP{appointment.id:06d}"
    db.commit()
    return appointment
