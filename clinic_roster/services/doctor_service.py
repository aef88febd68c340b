import math
from datetime import date, datetime, timedelta
from typing import List, Optional, Protocol
from uuid import UUID

from fastapi import HTTPException
from redis.asyncio.lock import Lock
from redis.exceptions import LockError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import func, or_, select

from clinic_roster.core.config import settings
from clinic_roster.core.logger import logger
from clinic_roster.core.utils import get_day_of_week, to_utc_date, utc_now, utc_today
from clinic_roster.db.models import Doctor, DoctorSchedule, Shift
from clinic_roster.db.schedule_repository import ScheduleRepository
from clinic_roster.schemas.doctor import (
    DoctorCreate,
    DoctorListResponse,
    DoctorResponse,
    DoctorUpdate,
    PaginationMeta,
)
from clinic_roster.schemas.schedule import (
    DoctorScheduleResponse,
    GenerateScheduleResponse,
    ManualAssignmentRequest,
    ManualAssignmentResponse,
    NewSchedule,
    ShiftSlotResponse,
    SwapResult,
    SwapShiftsRequest,
    SwapShiftsResponse,
)
from clinic_roster.services.allocator import (
    ShiftAllocator,
    Slot,
    enumerate_slots,
    understaffed_slots,
    week_bounds,
)

class LockClient(Protocol):
    def lock(self, name: str, timeout: int) -> Lock: ...

def _slot_response(slot: Slot) -> ShiftSlotResponse:
    return ShiftSlotResponse(date=slot.date, shift=slot.shift, day_of_week=get_day_of_week(slot.date))

class DoctorService:
    def __init__(self, session: AsyncSession, lock_client: LockClient):
        self.session = session
        self.lock_client = lock_client
        self.schedules = ScheduleRepository(session)

    async def _fail(self, action: str, exc: Exception) -> HTTPException:
        logger.exception(f"Error {action}")
        await self.session.rollback()
        return HTTPException(status_code=500, detail=f"Error {action}: {exc}")

    # Doctors

    async def create_doctor(self, doctor_in: DoctorCreate) -> Doctor:
        doctor = Doctor(**doctor_in.model_dump())
        self.session.add(doctor)
        await self.session.commit()
        await self.session.refresh(doctor)
        logger.info(f"Created doctor {doctor.id}")
        return doctor

    async def get_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.session.get(Doctor, doctor_id)
        if not doctor:
            raise HTTPException(status_code=404, detail=f"Doctor with ID {doctor_id} not found")
        return doctor

    async def get_doctors(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        specialization: Optional[str] = None,
    ) -> DoctorListResponse:
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(Doctor.name.ilike(pattern), Doctor.specialization.ilike(pattern)))
        if specialization:
            conditions.append(Doctor.specialization.ilike(f"%{specialization}%"))

        count_stmt = select(func.count(Doctor.id)).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(Doctor)
            .where(*conditions)
            .order_by(Doctor.created_at.desc(), Doctor.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        total_pages = math.ceil(total / limit) if total else 0

        return DoctorListResponse(
            data=[DoctorResponse.model_validate(doctor) for doctor in result.scalars().all()],
            meta=PaginationMeta(
                total=total,
                page=page,
                limit=limit,
                total_pages=total_pages,
                has_next_page=page < total_pages,
                has_previous_page=page > 1,
            ),
        )

    async def get_available_doctors(self) -> List[Doctor]:
        stmt = select(Doctor).where(Doctor.is_available == True).order_by(Doctor.created_at, Doctor.id)  # noqa: E712
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_doctor(self, doctor_id: UUID, doctor_update: DoctorUpdate) -> Doctor:
        doctor = await self.get_doctor(doctor_id)

        update_data = doctor_update.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(doctor, key, value)
        doctor.updated_at = utc_now()

        self.session.add(doctor)
        await self.session.commit()
        await self.session.refresh(doctor)
        return doctor

    async def delete_doctor(self, doctor_id: UUID) -> Doctor:
        doctor = await self.get_doctor(doctor_id)
        if await self.schedules.count_for_doctor(doctor_id):
            raise HTTPException(status_code=409, detail="Doctor has schedule entries and cannot be deleted")

        await self.session.delete(doctor)
        await self.session.commit()
        return doctor

    # Roster queries

    async def get_doctor_schedule(
        self, doctor_id: UUID, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> List[DoctorSchedule]:
        await self.get_doctor(doctor_id)

        start = start_date or utc_today()
        end = end_date or start + timedelta(days=settings.DEFAULT_SCHEDULE_WINDOW_DAYS)
        if start > end:
            raise HTTPException(status_code=400, detail="start_date must not be after end_date")

        return await self.schedules.find_schedules(start, end, doctor_id=doctor_id)

    async def get_schedules_with_time_off(self, start_date: date, end_date: date) -> List[DoctorSchedule]:
        if start_date > end_date:
            raise HTTPException(status_code=400, detail="start_date must not be after end_date")
        return await self.schedules.find_schedules(start_date, end_date, is_off=True)

    async def get_doctors_by_date(self, day: date) -> List[Doctor]:
        stmt = (
            select(Doctor)
            .where(
                Doctor.id.in_(
                    select(DoctorSchedule.doctor_id).where(
                        DoctorSchedule.date == day,
                        DoctorSchedule.is_off == False,  # noqa: E712
                    )
                )
            )
            .order_by(Doctor.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_available_doctors_for_shift(self, day: date, shift: Shift) -> List[Doctor]:
        booked = select(DoctorSchedule.doctor_id).where(
            DoctorSchedule.date == day,
            DoctorSchedule.shift == shift,
            DoctorSchedule.is_off == False,  # noqa: E712
        )
        stmt = (
            select(Doctor)
            .where(Doctor.is_available == True, Doctor.id.not_in(booked))  # noqa: E712
            .order_by(Doctor.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_remaining_shifts(self, start_date: date, end_date: date, doctors_per_shift: int) -> List[Slot]:
        """Slots in the range whose active doctor count is below ``doctors_per_shift``."""
        counts = await self.schedules.count_active_by_slot(start_date, end_date)
        return understaffed_slots(enumerate_slots(start_date, end_date), counts, doctors_per_shift)

    async def list_remaining_shifts(
        self, start_date: date, end_date: date, doctors_per_shift: int
    ) -> List[ShiftSlotResponse]:
        if start_date > end_date:
            raise HTTPException(status_code=400, detail="start_date must not be after end_date")
        slots = await self.get_remaining_shifts(start_date, end_date, doctors_per_shift)
        return [_slot_response(slot) for slot in slots]

    # Roster operations

    async def generate_schedule(self, doctors_per_shift: int, start_date: date | datetime) -> GenerateScheduleResponse:
        week_start, week_end = week_bounds(to_utc_date(start_date))
        logger.info(
            f"Generating schedule for {week_start.isoformat()}..{week_end.isoformat()} "
            f"with {doctors_per_shift} doctor(s) per shift"
        )

        try:
            lock = self.lock_client.lock(f"schedule:generate:{week_start.isoformat()}", settings.SCHEDULE_LOCK_TTL_SECONDS)
            acquired = await lock.acquire(blocking=False)
        except Exception as exc:
            raise await self._fail("generating schedule", exc) from exc
        if not acquired:
            raise HTTPException(status_code=409, detail="Schedule generation is already running for this week")

        try:
            return await self._generate_week(doctors_per_shift, week_start, week_end)
        except HTTPException:
            raise
        except IntegrityError:
            await self.session.rollback()
            raise HTTPException(status_code=409, detail="Schedule already exists for this week")
        except Exception as exc:
            raise await self._fail("generating schedule", exc) from exc
        finally:
            await self._release(lock)

    async def _release(self, lock: Lock):
        try:
            await lock.release()
        except LockError:
            # Expired and possibly taken by another generation; leave that one alone
            logger.warning(f"Lock {lock.name} expired before generation finished")

    async def _generate_week(self, doctors_per_shift: int, week_start: date, week_end: date) -> GenerateScheduleResponse:
        if await self.schedules.has_schedules_between(week_start, week_end):
            raise HTTPException(status_code=409, detail="Schedule already exists for this week")

        doctors = await self.get_available_doctors()
        if not doctors:
            raise HTTPException(status_code=400, detail="No available doctors found")
        if doctors_per_shift > len(doctors):
            raise HTTPException(
                status_code=400,
                detail=(
                    f"Number of doctors per shift ({doctors_per_shift}) cannot exceed "
                    f"total available doctors ({len(doctors)})"
                ),
            )

        allocator = ShiftAllocator(enumerate_slots(week_start, week_end), doctors_per_shift)
        allocation = allocator.allocate([doctor.id for doctor in doctors])

        for assignment in allocation.assignments:
            self.schedules.add_schedule(assignment.doctor_id, assignment.slot.date, assignment.slot.shift)
        await self.session.commit()

        logger.info(
            f"Assigned {allocation.total_assigned} of {allocation.total_required} shifts "
            f"({allocation.shifts_per_doctor} per doctor, {allocation.unassigned} left for manual assignment)"
        )

        remaining = await self.get_remaining_shifts(week_start, week_end, doctors_per_shift)
        return GenerateScheduleResponse(
            message="Schedule generated successfully",
            total_assigned_shifts=allocation.total_assigned,
            remaining_shifts=allocation.unassigned,
            shifts_needing_doctors=[_slot_response(slot) for slot in remaining],
        )

    async def assign_doctors_manually(self, data: ManualAssignmentRequest) -> ManualAssignmentResponse:
        try:
            return await self._assign_doctors(data)
        except HTTPException:
            raise
        except IntegrityError:
            await self.session.rollback()
            raise HTTPException(status_code=409, detail="One or more doctors are already assigned to this shift")
        except Exception as exc:
            raise await self._fail("assigning doctors", exc) from exc

    async def _assign_doctors(self, data: ManualAssignmentRequest) -> ManualAssignmentResponse:
        day, shift = data.date, data.shift

        if day < utc_today():
            raise HTTPException(status_code=400, detail="Cannot assign schedule for past dates")

        current = await self.schedules.find_schedules(day, day, shift=shift, is_off=False)

        remaining = await self.get_remaining_shifts(day, day, data.doctors_per_shift)
        if Slot(day, shift) not in remaining:
            raise HTTPException(status_code=400, detail="This shift is not in the remaining shifts list")

        available_slots = data.doctors_per_shift - len(current)
        if len(data.doctor_ids) > available_slots:
            raise HTTPException(
                status_code=400,
                detail=(
                    f"Cannot assign {len(data.doctor_ids)} doctors. Only {available_slots} slots available "
                    f"for this shift ({data.doctors_per_shift} doctors required per shift)"
                ),
            )

        if len(set(data.doctor_ids)) != len(data.doctor_ids):
            raise HTTPException(status_code=400, detail="Doctor IDs must be unique")

        for doctor_id in data.doctor_ids:
            if not await self.session.get(Doctor, doctor_id):
                raise HTTPException(status_code=400, detail="One or more doctors not found")

        assigned = {schedule.doctor_id for schedule in current}
        duplicates = [str(doctor_id) for doctor_id in data.doctor_ids if doctor_id in assigned]
        if duplicates:
            raise HTTPException(
                status_code=400,
                detail=f"Doctors with IDs {', '.join(duplicates)} are already assigned to this shift",
            )

        assignments = [self.schedules.add_schedule(doctor_id, day, shift) for doctor_id in data.doctor_ids]
        await self.session.commit()
        for schedule in assignments:
            await self.session.refresh(schedule)

        logger.info(f"Manually assigned {len(assignments)} doctor(s) to {day.isoformat()} {shift.value}")
        return ManualAssignmentResponse(
            message="Doctors assigned successfully",
            assignments=[DoctorScheduleResponse.model_validate(schedule) for schedule in assignments],
            remaining_shifts=available_slots - len(data.doctor_ids),
            doctors_per_shift=data.doctors_per_shift,
        )

    async def swap_shifts(self, data: SwapShiftsRequest) -> SwapShiftsResponse:
        try:
            return await self._swap(data)
        except HTTPException:
            raise
        except Exception as exc:
            raise await self._fail("swapping shifts", exc) from exc

    async def _swap(self, data: SwapShiftsRequest) -> SwapShiftsResponse:
        first, second = data.doctor1, data.doctor2

        first_schedule = await self.schedules.find_first_schedule(first.id, first.date, first.shift)
        second_schedule = await self.schedules.find_first_schedule(second.id, second.date, second.shift)

        if not first_schedule or not second_schedule:
            raise HTTPException(
                status_code=404,
                detail="Both doctors must have schedules for the specified dates and shifts",
            )
        if first_schedule.id == second_schedule.id:
            raise HTTPException(status_code=400, detail="Cannot swap a schedule with itself")
        if (first_schedule.date, first_schedule.shift) == (second_schedule.date, second_schedule.shift):
            raise HTTPException(status_code=400, detail="Both doctors are already on this shift")
        if first_schedule.is_off or second_schedule.is_off:
            raise HTTPException(status_code=400, detail="Cannot swap shifts when either doctor has requested time off")

        # Each doctor must not already hold the slot they are about to receive
        for doctor_id, target in ((first.id, second_schedule), (second.id, first_schedule)):
            existing = await self.schedules.find_first_schedule(doctor_id, target.date, target.shift)
            if existing and not existing.is_off and existing.id not in (first_schedule.id, second_schedule.id):
                raise HTTPException(
                    status_code=400,
                    detail=(
                        f"Doctor {doctor_id} is already assigned to {target.date.isoformat()} "
                        f"{target.shift.value}"
                    ),
                )

        self.schedules.update_schedule(first_schedule, doctor_id=second.id, swapped_with_id=second_schedule.id)
        self.schedules.update_schedule(second_schedule, doctor_id=first.id, swapped_with_id=first_schedule.id)
        await self.session.commit()

        logger.info(f"Swapped schedules {first_schedule.id} and {second_schedule.id}")
        return SwapShiftsResponse(
            message="Shifts swapped successfully",
            doctor1=SwapResult(id=first.id, new_schedule=NewSchedule(date=second.date, shift=second.shift)),
            doctor2=SwapResult(id=second.id, new_schedule=NewSchedule(date=first.date, shift=first.shift)),
        )

    async def request_time_off(self, doctor_id: UUID, day: date, shift: Shift) -> DoctorSchedule:
        try:
            schedule = await self.schedules.find_first_schedule(doctor_id, day, shift)
            if not schedule:
                raise HTTPException(status_code=404, detail="Schedule not found")

            self.schedules.update_schedule(schedule, is_off=True)
            await self.session.commit()
            await self.session.refresh(schedule)
            logger.info(f"Doctor {doctor_id} is off on {day.isoformat()} {shift.value}")
            return schedule
        except HTTPException:
            raise
        except Exception as exc:
            raise await self._fail("requesting time off", exc) from exc
