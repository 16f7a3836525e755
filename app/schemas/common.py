"""
Response envelope shared by every API endpoint:

    {"success": true, "data": ..., "pagination": {...}}
    {"success": false, "error": {"code": ..., "message": ...}}
"""

from typing import Any, Dict, Generic, Optional, TypeVar
from pydantic import BaseModel

from .pagination import PaginationMeta

T = TypeVar('T')


class ErrorDetail(BaseModel):
    code: str
    message: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    fields: Optional[Dict[str, str]] = None
    request_id: Optional[str] = None
    trace: Optional[str] = None


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[ErrorDetail] = None
    pagination: Optional[PaginationMeta] = None


def success_response(data: Any = None, pagination: Optional[PaginationMeta] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True, "data": data}
    if pagination is not None:
        body["pagination"] = pagination.model_dump()
    return body


def error_response(error: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": False, "error": error}
