from pydantic import Field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from clinic_roster.db.models import DayOfWeek, Shift
from clinic_roster.schemas.doctor import CamelModel

class ShiftSlotResponse(CamelModel):
    date: date
    shift: Shift
    day_of_week: DayOfWeek

class DoctorScheduleResponse(CamelModel):
    id: UUID
    doctor_id: UUID
    date: date
    day_of_week: DayOfWeek
    shift: Shift
    is_off: bool
    swapped_with_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

class GenerateScheduleRequest(CamelModel):
    doctors_per_shift: int = Field(gt=0)
    start_date: datetime | date

class GenerateScheduleResponse(CamelModel):
    message: str
    total_assigned_shifts: int
    remaining_shifts: int
    shifts_needing_doctors: List[ShiftSlotResponse]

class ManualAssignmentRequest(CamelModel):
    date: date
    shift: Shift
    doctor_ids: List[UUID] = Field(min_length=1)
    doctors_per_shift: int = Field(gt=0)

class ManualAssignmentResponse(CamelModel):
    message: str
    assignments: List[DoctorScheduleResponse]
    remaining_shifts: int
    doctors_per_shift: int

class SwapParticipant(CamelModel):
    id: UUID
    date: date
    shift: Shift

class SwapShiftsRequest(CamelModel):
    doctor1: SwapParticipant
    doctor2: SwapParticipant

class NewSchedule(CamelModel):
    date: date
    shift: Shift

class SwapResult(CamelModel):
    id: UUID
    new_schedule: NewSchedule

class SwapShiftsResponse(CamelModel):
    message: str
    doctor1: SwapResult
    doctor2: SwapResult

class TimeOffRequest(CamelModel):
    date: date
    shift: Shift
