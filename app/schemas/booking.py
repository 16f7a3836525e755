from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from ..models.booking import BookingStatus


class BookingAssetCreate(BaseModel):
    category_name: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(default=1, ge=1, le=100000)


class BookingCreate(BaseModel):
    client_id: Optional[str] = None
    site_name: Optional[str] = Field(None, max_length=200)
    site_address: Optional[str] = Field(None, max_length=1000)
    postcode: Optional[str] = Field(None, max_length=20)
    scheduled_date: Optional[datetime] = None

    # Estimates are calculated upstream and stored as given
    estimated_co2e: float = Field(default=0, ge=0)
    estimated_buyback: float = Field(default=0, ge=0)
    charity_percent: float = Field(default=0, ge=0, le=100)

    erp_job_number: Optional[str] = Field(None, max_length=100)
    assets: List[BookingAssetCreate] = Field(default_factory=list)

    @field_validator('erp_job_number', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    notes: Optional[str] = Field(None, max_length=2000)


class AssignDriverRequest(BaseModel):
    driver_id: str = Field(..., min_length=1, max_length=36)


class BookingAssetResponse(BaseModel):
    id: str
    position: int
    category_name: str
    quantity: int

    class Config:
        from_attributes = True


class BookingStatusHistoryResponse(BaseModel):
    id: int
    status: str
    changed_by: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BookingResponse(BaseModel):
    id: str
    booking_number: str
    tenant_id: str
    client_id: Optional[str] = None
    reseller_id: Optional[str] = None
    site_name: Optional[str] = None
    site_address: Optional[str] = None
    postcode: Optional[str] = None
    status: BookingStatus
    scheduled_date: Optional[datetime] = None
    scheduled_at: Optional[datetime] = None
    collected_at: Optional[datetime] = None
    sanitised_at: Optional[datetime] = None
    graded_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    estimated_co2e: float = 0
    estimated_buyback: float = 0
    charity_percent: float = 0
    erp_job_number: Optional[str] = None
    job_id: Optional[str] = None
    driver_id: Optional[str] = None
    driver_name: Optional[str] = None
    scheduled_by: Optional[str] = None
    created_by: Optional[str] = None
    assets: List[BookingAssetResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BookingDetailResponse(BookingResponse):
    status_history: List[BookingStatusHistoryResponse] = []
