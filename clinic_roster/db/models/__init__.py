from sqlmodel import SQLModel
from .doctor import Doctor
from .doctor_schedule import DayOfWeek, DoctorSchedule, Shift

__all__ = [
    "SQLModel",
    "Doctor",
    "DoctorSchedule",
    "DayOfWeek",
    "Shift",
]
