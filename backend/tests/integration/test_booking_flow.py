"""
Integration tests for the booking transaction.

Covers the four reference scenarios (room booking with cash, overlapping
request, cross-branch assignment, tampered online payment) plus atomicity of
every failure path.
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from core.constants import LEDGER_STATUS_BOOKED, RESOURCE_TYPE_EMPLOYEE, RESOURCE_TYPE_ROOM
from core.exceptions import (
    AuthorizationError, BookingValidationError, ConflictError, ExternalServiceError, NotFoundError
)
from core.transaction import TransactionScope
from models import Appointment, AvailabilityEntry, User
from services.appointment_state_service import AppointmentStateService
from services.availability_ledger import AvailabilityLedger
from services.booking_service import BookingService, format_appointment_code
from services.payment_service import PaymentService, payment_gateway
from tests.conftest import create_service, ist
from tests.utils import book
from utils.datetime_utils import ensure_ist


@pytest.fixture(autouse=True)
def clock(frozen_clock):
    return frozen_clock


@pytest.fixture(autouse=True)
def no_emails():
    with patch("services.appointment_state_service.NotificationService.send_appointment_confirmation") as send:
        yield send


class TestReferenceScenarios:

    def test_cash_room_booking(self, db_session, spa):
        """Massage, Gold room, 10:00-11:00, cash."""
        result = book(
            db_session, spa["customer"],
            service_id=spa["swedish"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10), duration_minutes=60,
            payment_method="cash", price=Decimal("2500.00"), total_price=Decimal("4000.00"),
        )

        appointment = result.appointment
        assert appointment.status == "Pending"
        assert appointment.payment_status == "Cash"
        assert appointment.payment_method == "cash"
        assert appointment.room_id == spa["gold_central"].id
        assert appointment.room_type == "Gold"
        assert appointment.room_price == Decimal("1500.00")
        assert appointment.service_price == Decimal("2500.00")
        assert appointment.total_price == Decimal("4000.00")
        assert appointment.customer_id == spa["customer"].id
        assert appointment.created_by_id == spa["customer"].id
        assert appointment.employee_id is None
        assert appointment.appointment_code == format_appointment_code(appointment.id)
        assert ensure_ist(appointment.end_time) == ist(2024, 1, 10, 11)
        assert result.gateway_reference is None

        entries = AvailabilityLedger.entries_for_appointment(db_session, appointment.id)
        assert len(entries) == 1
        assert entries[0].resource_type == RESOURCE_TYPE_ROOM
        assert entries[0].resource_id == spa["gold_central"].id
        assert entries[0].status == LEDGER_STATUS_BOOKED
        assert ensure_ist(entries[0].start_time) == ist(2024, 1, 10, 10)
        assert ensure_ist(entries[0].end_time) == ist(2024, 1, 10, 11)

        # Preview: therapists at the room's branch only
        assert [e.id for e in result.eligible_employees] == [spa["therapist_central"].id]

    def test_overlapping_request(self, db_session, spa):
        """A second overlapping Gold request skips the booked room; a third finds none."""
        first = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10), duration_minutes=60,
        )
        second = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10, 30), duration_minutes=60,
        )
        assert first.appointment.room_id == spa["gold_central"].id
        assert second.appointment.room_id == spa["gold_north"].id

        appointments_before = db_session.query(Appointment).count()
        entries_before = db_session.query(AvailabilityEntry).count()

        with pytest.raises(ConflictError, match="No available rooms for selected time"):
            book(
                db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
                start_time=ist(2024, 1, 10, 10, 30), duration_minutes=60,
            )

        assert db_session.query(Appointment).count() == appointments_before
        assert db_session.query(AvailabilityEntry).count() == entries_before

    def test_cross_branch_assignment_rejected(self, db_session, spa):
        result = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10), duration_minutes=60,
        )
        appointment_id = result.appointment.id

        with pytest.raises(BookingValidationError):
            with TransactionScope(db_session) as scope:
                AppointmentStateService.assign_employee(scope, appointment_id, spa["therapist_north"].id)

        appointment = db_session.get(Appointment, appointment_id)
        db_session.refresh(appointment)
        assert appointment.status == "Pending"
        assert appointment.employee_id is None
        assert db_session.query(AvailabilityEntry).filter(
            AvailabilityEntry.resource_type == RESOURCE_TYPE_EMPLOYEE
        ).count() == 0

    def test_online_payment_with_tampered_signature(self, db_session, spa):
        with patch.object(payment_gateway, "create_intent", return_value="order_test_1") as create_intent, \
                patch.object(payment_gateway, "key_secret", "test_secret"):
            result = book(
                db_session, spa["customer"], service_id=spa["haircut"].id,
                start_time=ist(2024, 1, 10, 10), payment_method="online",
                price=Decimal("800.00"), total_price=Decimal("800.00"),
            )
            assert result.gateway_reference == "order_test_1"
            assert result.appointment.gateway_order_id == "order_test_1"
            assert result.appointment.payment_status == "Pending"
            create_intent.assert_called_once()
            assert create_intent.call_args.args[0] == Decimal("800.00")
            assert create_intent.call_args.kwargs["reference"] == f"appt_{result.appointment.appointment_code}"

            with pytest.raises(BookingValidationError):
                with TransactionScope(db_session) as scope:
                    PaymentService.verify_payment(
                        scope, "order_test_1", "pay_1", "tampered", result.appointment.id
                    )

        appointment = db_session.get(Appointment, result.appointment.id)
        db_session.refresh(appointment)
        assert appointment.payment_status == "Pending"
        assert appointment.paid_at is None


class TestCoordinatorRules:

    def test_non_room_service_attaches_no_room(self, db_session, spa):
        result = book(
            db_session, spa["customer"], service_id=spa["haircut"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10), room_price=Decimal("999"),
        )
        appointment = result.appointment
        assert appointment.room_id is None
        assert appointment.room_type is None
        assert appointment.room_price == Decimal("0")
        assert ensure_ist(appointment.end_time) == ist(2024, 1, 10, 10, 45)
        assert AvailabilityLedger.entries_for_appointment(db_session, appointment.id) == []
        # No branch constraint without a room
        assert [e.id for e in result.eligible_employees] == [spa["stylist_north"].id]

    def test_explicit_room_price_kept(self, db_session, spa):
        result = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Silver",
            start_time=ist(2024, 1, 10, 10), room_price=Decimal("500.00"),
        )
        assert result.appointment.room_id == spa["silver_central"].id
        assert result.appointment.room_price == Decimal("500.00")
        assert result.appointment.total_price == Decimal("3000.00")

    def test_maintenance_rooms_not_searched(self, db_session, spa):
        with pytest.raises(ConflictError):
            book(
                db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Diamond",
                start_time=ist(2024, 1, 10, 10),
            )

    def test_back_to_back_reuses_room(self, db_session, spa):
        first = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Silver",
            start_time=ist(2024, 1, 10, 10),
        )
        second = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Silver",
            start_time=ist(2024, 1, 10, 11),
        )
        assert first.appointment.room_id == second.appointment.room_id == spa["silver_central"].id

    def test_missing_room_type(self, db_session, spa):
        with pytest.raises(BookingValidationError, match="Room type is required"):
            book(db_session, spa["customer"], service_id=spa["swedish"].id, start_time=ist(2024, 1, 10, 10))

    def test_unknown_room_type(self, db_session, spa):
        with pytest.raises(BookingValidationError):
            book(
                db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Platinum",
                start_time=ist(2024, 1, 10, 10),
            )

    def test_past_start(self, db_session, spa):
        with pytest.raises(BookingValidationError, match="past"):
            book(
                db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
                start_time=ist(2023, 12, 31, 10),
            )

    @pytest.mark.parametrize("duration", [0, -30])
    def test_non_positive_duration(self, db_session, spa, duration):
        with pytest.raises(BookingValidationError):
            book(
                db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
                start_time=ist(2024, 1, 10, 10), duration_minutes=duration,
            )

    def test_unknown_service(self, db_session, spa):
        with pytest.raises(NotFoundError):
            book(db_session, spa["customer"], service_id=9999, start_time=ist(2024, 1, 10, 10))

    def test_inactive_service(self, db_session, spa):
        retired = create_service(db_session, spa["hair"], "Retired Cut", "500.00")
        retired.is_active = False
        db_session.commit()
        with pytest.raises(NotFoundError):
            book(db_session, spa["customer"], service_id=retired.id, start_time=ist(2024, 1, 10, 10))

    def test_invalid_payment_method(self, db_session, spa):
        with pytest.raises(BookingValidationError):
            book(
                db_session, spa["customer"], service_id=spa["haircut"].id,
                start_time=ist(2024, 1, 10, 10), payment_method="cheque",
            )

    def test_defaults_prices_from_catalog(self, db_session, spa):
        result = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10),
        )
        assert result.appointment.service_price == Decimal("2500.00")
        assert result.appointment.total_price == Decimal("4000.00")

    def test_codes_are_sequential(self, db_session, spa):
        codes = [
            book(
                db_session, spa["customer"], service_id=spa["haircut"].id,
                start_time=ist(2024, 1, 10, 10 + i),
            ).appointment.appointment_code
            for i in range(3)
        ]
        assert codes == ["APP000001", "APP000002", "APP000003"]


class TestStaffBooking:

    def test_staff_books_for_existing_customer(self, db_session, spa):
        result = book(
            db_session, spa["receptionist"], service_id=spa["haircut"].id, start_time=ist(2024, 1, 10, 10),
            customer_details={"name": "Meera", "phone": "98765-43210"},
        )
        assert result.appointment.customer_id == spa["customer"].id
        assert result.appointment.created_by_id == spa["receptionist"].id

    def test_staff_provisions_walk_in(self, db_session, spa):
        result = book(
            db_session, spa["admin"], service_id=spa["haircut"].id, start_time=ist(2024, 1, 10, 10),
            customer_details={"name": "Walk In", "phone": "9000000001"},
        )
        customer = db_session.get(User, result.appointment.customer_id)
        assert customer.phone == "9000000001"
        assert customer.email == "9000000001@customer.temp"

    def test_staff_without_details_books_for_self(self, db_session, spa):
        result = book(
            db_session, spa["receptionist"], service_id=spa["haircut"].id, start_time=ist(2024, 1, 10, 10),
        )
        assert result.appointment.customer_id == spa["receptionist"].id

    @pytest.mark.parametrize("caller", ["customer", "therapist_central"])
    def test_non_staff_cannot_book_for_others(self, db_session, spa, caller):
        with pytest.raises(AuthorizationError):
            book(
                db_session, spa[caller], service_id=spa["haircut"].id, start_time=ist(2024, 1, 10, 10),
                customer_details={"name": "Walk In", "phone": "9000000001"},
            )
        assert db_session.query(User).filter(User.phone == "9000000001").count() == 0

    def test_staff_details_need_phone(self, db_session, spa):
        with pytest.raises(BookingValidationError):
            book(
                db_session, spa["receptionist"], service_id=spa["haircut"].id, start_time=ist(2024, 1, 10, 10),
                customer_details={"name": "Walk In", "phone": ""},
            )


class TestAtomicity:

    def test_gateway_failure_rolls_back_everything(self, db_session, spa):
        with patch.object(payment_gateway, "create_intent", side_effect=ExternalServiceError("gateway down")):
            with pytest.raises(ExternalServiceError):
                book(
                    db_session, spa["receptionist"], service_id=spa["swedish"].id, room_type="Gold",
                    start_time=ist(2024, 1, 10, 10), payment_method="online",
                    customer_details={"name": "Walk In", "phone": "9000000001"},
                )

        assert db_session.query(Appointment).count() == 0
        assert db_session.query(AvailabilityEntry).count() == 0
        # The walk-in customer provisioned earlier in the same transaction is gone too
        assert db_session.query(User).filter(User.phone == "9000000001").count() == 0

        # The room is immediately bookable again
        result = book(
            db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
            start_time=ist(2024, 1, 10, 10),
        )
        assert result.appointment.room_id == spa["gold_central"].id

    def test_ledger_failure_rolls_back_appointment(self, db_session, spa):
        with patch(
            "services.booking_service.AvailabilityLedger.reserve",
            side_effect=RuntimeError("ledger write failed")
        ):
            with pytest.raises(RuntimeError):
                book(
                    db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
                    start_time=ist(2024, 1, 10, 10),
                )

        assert db_session.query(Appointment).count() == 0
        assert db_session.query(AvailabilityEntry).count() == 0

    def test_integrity_error_becomes_conflict(self, db_session, spa):
        integrity_error = IntegrityError("INSERT INTO availability_entries", {}, Exception("unique violation"))
        with patch("services.booking_service.AvailabilityLedger.reserve", side_effect=integrity_error):
            with pytest.raises(ConflictError):
                book(
                    db_session, spa["customer"], service_id=spa["swedish"].id, room_type="Gold",
                    start_time=ist(2024, 1, 10, 10),
                )

        assert db_session.query(Appointment).count() == 0

    def test_customer_provisioned_concurrently_becomes_conflict(self, db_session, spa):
        # The lookup misses, then the insert hits the existing phone
        with patch("services.customer_service.CustomerService.find_customer", return_value=None):
            with pytest.raises(ConflictError):
                book(
                    db_session, spa["receptionist"], service_id=spa["swedish"].id, room_type="Gold",
                    start_time=ist(2024, 1, 10, 10),
                    customer_details={"name": "Meera", "phone": "9876543210"},
                )

        assert db_session.query(Appointment).count() == 0
        assert db_session.query(AvailabilityEntry).count() == 0
        assert db_session.query(User).filter(User.phone == "9876543210").count() == 1


class TestEligibleEmployees:

    def test_inactive_employees_excluded(self, db_session, spa):
        spa["therapist_central"].is_active = False
        db_session.commit()
        employees = BookingService.get_eligible_employees(db_session, spa["massage"], spa["gold_central"])
        assert employees == []

    def test_no_category(self, db_session, spa):
        assert BookingService.get_eligible_employees(db_session, None, None) == []
