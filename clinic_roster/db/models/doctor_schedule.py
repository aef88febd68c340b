import datetime as dt
from enum import Enum
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import DateTime, Index, text
from typing import Optional, TYPE_CHECKING
from uuid import UUID, uuid4

if TYPE_CHECKING:
    from .doctor import Doctor

class Shift(str, Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"

class DayOfWeek(str, Enum):
    SUNDAY = "SUNDAY"
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"

class DoctorSchedule(SQLModel, table=True):
    __tablename__ = "doctor_schedules"
    __table_args__ = (
        # At most one active row per doctor and slot; off-duty rows are kept as history
        Index(
            "uq_doctor_schedules_active_slot",
            "doctor_id",
            "date",
            "shift",
            unique=True,
            postgresql_where=text("is_off = false"),
            sqlite_where=text("is_off = 0"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    doctor_id: UUID = Field(foreign_key="doctors.id", index=True)
    date: dt.date = Field(index=True)
    day_of_week: DayOfWeek
    shift: Shift
    is_off: bool = Field(default=False)
    swapped_with_id: Optional[UUID] = Field(default=None, foreign_key="doctor_schedules.id")
    created_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc), sa_type=DateTime(timezone=True))
    updated_at: dt.datetime = Field(default_factory=lambda: dt.datetime.now(dt.timezone.utc), sa_type=DateTime(timezone=True))

    doctor: "Doctor" = Relationship(back_populates="schedules")
