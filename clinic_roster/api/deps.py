from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from clinic_roster.core.redis import redis_client
from clinic_roster.db.session import get_session
from clinic_roster.services.doctor_service import DoctorService, LockClient

def get_lock_client() -> LockClient:
    return redis_client

async def get_doctor_service(
    session: AsyncSession = Depends(get_session),
    lock_client: LockClient = Depends(get_lock_client),
) -> DoctorService:
    return DoctorService(session, lock_client)
