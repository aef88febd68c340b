from fastapi import APIRouter
from clinic_roster.api.v1 import doctors, schedules

api_router = APIRouter()

# Registered first so /doctors/schedule/... is not captured by /doctors/{doctor_id}
api_router.include_router(schedules.router, prefix="/doctors/schedule", tags=["schedules"])
api_router.include_router(doctors.router, prefix="/doctors", tags=["doctors"])
