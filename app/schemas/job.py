from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import datetime

from ..models.job import JobStatus
from .evidence import EvidenceResponse


class JobStatusUpdate(BaseModel):
    # Validated by the service so the "en-route" spelling is accepted too
    status: str = Field(..., min_length=1, max_length=30)
    notes: Optional[str] = Field(None, max_length=2000)


class JobCancelRequest(BaseModel):
    notes: Optional[str] = Field(None, max_length=2000)


class JourneyFieldsUpdate(BaseModel):
    dial2_collection: Optional[str] = Field(None, max_length=2000)
    security_requirements: Optional[str] = Field(None, max_length=2000)
    id_required: Optional[str] = Field(None, max_length=2000)
    loading_bay_location: Optional[str] = Field(None, max_length=2000)
    vehicle_height_restrictions: Optional[str] = Field(None, max_length=2000)
    door_lift_size: Optional[str] = Field(None, max_length=2000)
    road_works_public_events: Optional[str] = Field(None, max_length=2000)
    manual_handling_requirements: Optional[str] = Field(None, max_length=2000)


class JobAssetResponse(BaseModel):
    id: str
    position: int
    category_name: str
    quantity: int

    class Config:
        from_attributes = True


class JobStatusHistoryResponse(BaseModel):
    id: int
    status: str
    changed_by: str
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class JobResponse(BaseModel):
    id: str
    erp_job_number: str
    booking_id: Optional[str] = None
    tenant_id: str
    client_name: Optional[str] = None
    site_name: Optional[str] = None
    site_address: Optional[str] = None
    status: JobStatus
    scheduled_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    estimated_arrival: Optional[datetime] = None
    driver_id: Optional[str] = None
    co2e_saved: float = 0
    travel_emissions: float = 0
    buyback_value: float = 0
    charity_percent: float = 0
    dial2_collection: Optional[str] = None
    security_requirements: Optional[str] = None
    id_required: Optional[str] = None
    loading_bay_location: Optional[str] = None
    vehicle_height_restrictions: Optional[str] = None
    door_lift_size: Optional[str] = None
    road_works_public_events: Optional[str] = None
    manual_handling_requirements: Optional[str] = None
    assets: List[JobAssetResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class JobDetailResponse(JobResponse):
    status_history: List[JobStatusHistoryResponse] = []
    evidence: List[EvidenceResponse] = []
