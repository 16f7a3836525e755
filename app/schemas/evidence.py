from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Any
from datetime import datetime


class EvidenceSubmit(BaseModel):
    """
    Evidence for one job milestone.

    The driver app sends either the fields directly or nested under an
    "evidence" key; both are accepted. Blank entries are dropped by the
    service, not rejected here.
    """
    status: str = Field(..., min_length=1, max_length=30)
    photos: List[Any] = Field(default_factory=list)
    signature: Optional[str] = None
    seal_numbers: List[Any] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=5000)

    @model_validator(mode='before')
    @classmethod
    def unwrap_nested(cls, data):
        if isinstance(data, dict) and isinstance(data.get("evidence"), dict):
            nested = dict(data["evidence"])
            if "status" not in nested and "status" in data:
                nested["status"] = data["status"]
            return nested
        return data


class EvidenceResponse(BaseModel):
    id: str
    job_id: str
    status: str
    photos: List[str] = []
    signature: Optional[str] = None
    seal_numbers: List[str] = []
    notes: Optional[str] = None
    uploaded_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
