from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query

from clinic_roster.api.deps import get_doctor_service
from clinic_roster.db.models import Shift
from clinic_roster.schemas.doctor import DoctorResponse
from clinic_roster.schemas.schedule import (
    DoctorScheduleResponse,
    GenerateScheduleRequest,
    GenerateScheduleResponse,
    ManualAssignmentRequest,
    ManualAssignmentResponse,
    ShiftSlotResponse,
    SwapShiftsRequest,
    SwapShiftsResponse,
)
from clinic_roster.services.doctor_service import DoctorService

router = APIRouter()

@router.post("/generate", response_model=GenerateScheduleResponse)
async def generate_schedule(
    request: GenerateScheduleRequest,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.generate_schedule(request.doctors_per_shift, request.start_date)

@router.post("/assign", response_model=ManualAssignmentResponse)
async def assign_doctors_manually(
    request: ManualAssignmentRequest,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.assign_doctors_manually(request)

@router.post("/swap", response_model=SwapShiftsResponse)
async def swap_shifts(
    request: SwapShiftsRequest,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.swap_shifts(request)

@router.get("/remaining", response_model=List[ShiftSlotResponse])
async def read_remaining_shifts(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    doctors_per_shift: int = Query(..., alias="doctorsPerShift", gt=0),
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.list_remaining_shifts(start_date, end_date, doctors_per_shift)

@router.get("/time-off", response_model=List[DoctorScheduleResponse])
async def read_time_off(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_schedules_with_time_off(start_date, end_date)

@router.get("/on-duty", response_model=List[DoctorResponse])
async def read_doctors_on_duty(
    day: date = Query(..., alias="date"),
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_doctors_by_date(day)

@router.get("/available", response_model=List[DoctorResponse])
async def read_available_doctors(
    day: date = Query(..., alias="date"),
    shift: Shift = Query(...),
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_available_doctors_for_shift(day, shift)
