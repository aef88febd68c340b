from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List
from uuid import UUID
from datetime import datetime

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

class DoctorBase(CamelModel):
    name: str = Field(min_length=1)
    specialization: Optional[str] = None
    is_available: bool = True

class DoctorCreate(DoctorBase):
    pass

class DoctorUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    specialization: Optional[str] = None
    is_available: Optional[bool] = None

class DoctorResponse(DoctorBase):
    id: UUID
    created_at: datetime
    updated_at: datetime

class PaginationMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

class DoctorListResponse(CamelModel):
    data: List[DoctorResponse]
    meta: PaginationMeta
