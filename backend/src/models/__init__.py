# Package initialization
# Import all models to ensure relationships are properly established
from .branch import Branch
from .user import User
from .category import Category
from .service import Service
from .room import Room
from .appointment import Appointment
from .availability_entry import AvailabilityEntry

__all__ = [
    "Branch",
    "User",
    "Category",
    "Service",
    "Room",
    "Appointment",
    "AvailabilityEntry",
]
