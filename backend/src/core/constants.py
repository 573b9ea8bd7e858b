"""Application constants and configuration values."""

from core.config import FRONTEND_URL

# Database connection settings
DB_POOL_RECYCLE_SECONDS = 300  # 5 minutes

# CORS origins for development and production
_CORS_ORIGINS_RAW = [
    "http://localhost:5173",      # React dev server (Vite)
    FRONTEND_URL,
]

# Filter out None values and empty strings to avoid CORS errors
CORS_ORIGINS = [origin for origin in _CORS_ORIGINS_RAW if origin and origin.strip()]

# User roles
ROLE_USER = "user"
ROLE_EMPLOYEE = "employee"
ROLE_ADMIN = "admin"
USER_ROLES = (ROLE_USER, ROLE_EMPLOYEE, ROLE_ADMIN)

# Appointment statuses
STATUS_PENDING = "Pending"
STATUS_CONFIRMED = "Confirmed"
STATUS_IN_PROGRESS = "In Progress"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"
APPOINTMENT_STATUSES = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)

# Payment
PAYMENT_STATUS_PENDING = "Pending"
PAYMENT_STATUS_PAID = "Paid"
PAYMENT_STATUS_REFUNDED = "Refunded"
PAYMENT_STATUS_CASH = "Cash"
PAYMENT_STATUSES = (
    PAYMENT_STATUS_PENDING,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_REFUNDED,
    PAYMENT_STATUS_CASH,
)

PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_ONLINE = "online"
PAYMENT_METHODS = (PAYMENT_METHOD_CASH, PAYMENT_METHOD_ONLINE)

# Rooms
ROOM_TYPES = ("Silver", "Gold", "Diamond")
ROOM_STATUS_AVAILABLE = "Available"
ROOM_STATUS_BOOKED = "Booked"
ROOM_STATUS_MAINTENANCE = "Maintenance"
ROOM_STATUSES = (ROOM_STATUS_AVAILABLE, ROOM_STATUS_BOOKED, ROOM_STATUS_MAINTENANCE)

# Availability ledger
RESOURCE_TYPE_ROOM = "room"
RESOURCE_TYPE_EMPLOYEE = "employee"
RESOURCE_TYPES = (RESOURCE_TYPE_ROOM, RESOURCE_TYPE_EMPLOYEE)

LEDGER_STATUS_BOOKED = "Booked"
LEDGER_STATUS_RELEASED = "Released"

# Appointment codes: APP000001, APP000002, ...
APPOINTMENT_CODE_PREFIX = "APP"
APPOINTMENT_CODE_DIGITS = 6

# Placeholder email domain for walk-in customers provisioned without an email
PLACEHOLDER_EMAIL_DOMAIN = "customer.temp"
