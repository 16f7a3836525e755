"""
Application Error Types

Services raise these instead of HTTPException so they stay usable outside a
request. The exception handlers in app.main turn them into the standard
response envelope.

    AppError (base, 500)
    +-- ValidationError   400  bad input or rejected transition
    +-- UnauthorizedError 401  missing or invalid credentials
    +-- ForbiddenError    403  authenticated but not allowed
    +-- NotFoundError     404  missing or outside the caller's scope
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class ValidationError(AppError):
    """
    Rejected input.

    For status transitions the attempted from/to values are kept so callers
    and logs can report them without parsing the message.
    """
    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        from_status: Optional[str] = None,
        to_status: Optional[str] = None,
        fields: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.from_status = from_status
        self.to_status = to_status
        self.fields = fields or {}

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.from_status is not None:
            data["from_status"] = self.from_status
        if self.to_status is not None:
            data["to_status"] = self.to_status
        if self.fields:
            data["fields"] = self.fields
        return data


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        if resource_id:
            message = f'{resource} with ID "{resource_id}" not found'
        else:
            message = f"{resource} not found"
        super().__init__(message)
        self.resource = resource
        self.resource_id = resource_id
