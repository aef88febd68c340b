from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, select

from clinic_roster.core.utils import get_day_of_week, utc_now
from clinic_roster.db.models import DoctorSchedule, Shift

_SHIFT_ORDER = {Shift.MORNING: 0, Shift.AFTERNOON: 1}

def schedule_sort_key(schedule: DoctorSchedule):
    return (schedule.date, _SHIFT_ORDER[schedule.shift])

class ScheduleRepository:
    """Data access for DoctorSchedule rows. Commits are left to the caller."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def add_schedule(self, doctor_id: UUID, day: date, shift: Shift) -> DoctorSchedule:
        schedule = DoctorSchedule(
            doctor_id=doctor_id,
            date=day,
            day_of_week=get_day_of_week(day),
            shift=shift,
            is_off=False,
        )
        self.session.add(schedule)
        return schedule

    async def find_schedules(
        self,
        start: date,
        end: date,
        doctor_id: Optional[UUID] = None,
        shift: Optional[Shift] = None,
        is_off: Optional[bool] = None,
    ) -> List[DoctorSchedule]:
        stmt = select(DoctorSchedule).where(
            DoctorSchedule.date >= start,
            DoctorSchedule.date <= end,
        )
        if doctor_id is not None:
            stmt = stmt.where(DoctorSchedule.doctor_id == doctor_id)
        if shift is not None:
            stmt = stmt.where(DoctorSchedule.shift == shift)
        if is_off is not None:
            stmt = stmt.where(DoctorSchedule.is_off == is_off)
        result = await self.session.execute(stmt)
        return sorted(result.scalars().all(), key=schedule_sort_key)

    async def find_first_schedule(self, doctor_id: UUID, day: date, shift: Shift) -> DoctorSchedule | None:
        # Active rows win over off-duty history for the same slot
        stmt = select(DoctorSchedule).where(
            DoctorSchedule.doctor_id == doctor_id,
            DoctorSchedule.date == day,
            DoctorSchedule.shift == shift,
        ).order_by(DoctorSchedule.is_off, DoctorSchedule.created_at).limit(1)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def has_schedules_between(self, start: date, end: date) -> bool:
        stmt = select(func.count(DoctorSchedule.id)).where(
            DoctorSchedule.date >= start,
            DoctorSchedule.date <= end,
        )
        result = await self.session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def count_for_doctor(self, doctor_id: UUID) -> int:
        stmt = select(func.count(DoctorSchedule.id)).where(DoctorSchedule.doctor_id == doctor_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def count_active_by_slot(self, start: date, end: date) -> Dict[tuple, int]:
        """Active (not off-duty) rows per (date, shift) in the range."""
        stmt = select(
            DoctorSchedule.date,
            DoctorSchedule.shift,
            func.count(DoctorSchedule.id),
        ).where(
            DoctorSchedule.date >= start,
            DoctorSchedule.date <= end,
            DoctorSchedule.is_off == False,  # noqa: E712
        ).group_by(DoctorSchedule.date, DoctorSchedule.shift)
        result = await self.session.execute(stmt)
        return {(row[0], Shift(row[1])): row[2] for row in result.all()}

    def update_schedule(self, schedule: DoctorSchedule, **changes) -> DoctorSchedule:
        for key, value in changes.items():
            setattr(schedule, key, value)
        schedule.updated_at = utc_now()
        self.session.add(schedule)
        return schedule
