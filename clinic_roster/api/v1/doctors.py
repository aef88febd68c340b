from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from clinic_roster.api.deps import get_doctor_service
from clinic_roster.schemas.doctor import DoctorCreate, DoctorListResponse, DoctorResponse, DoctorUpdate
from clinic_roster.schemas.schedule import DoctorScheduleResponse, TimeOffRequest
from clinic_roster.services.doctor_service import DoctorService

router = APIRouter()

@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    doctor: DoctorCreate,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.create_doctor(doctor)

@router.get("", response_model=DoctorListResponse)
async def read_doctors(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    specialization: Optional[str] = None,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_doctors(page=page, limit=limit, search=search, specialization=specialization)

@router.get("/{doctor_id}", response_model=DoctorResponse)
async def read_doctor(
    doctor_id: UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_doctor(doctor_id)

@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: UUID,
    doctor_update: DoctorUpdate,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.update_doctor(doctor_id, doctor_update)

@router.delete("/{doctor_id}", response_model=DoctorResponse)
async def delete_doctor(
    doctor_id: UUID,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.delete_doctor(doctor_id)

@router.get("/{doctor_id}/schedule", response_model=List[DoctorScheduleResponse])
async def read_doctor_schedule(
    doctor_id: UUID,
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.get_doctor_schedule(doctor_id, start_date, end_date)

@router.post("/{doctor_id}/time-off", response_model=DoctorScheduleResponse)
async def request_time_off(
    doctor_id: UUID,
    request: TimeOffRequest,
    service: DoctorService = Depends(get_doctor_service)
):
    return await service.request_time_off(doctor_id, request.date, request.shift)
