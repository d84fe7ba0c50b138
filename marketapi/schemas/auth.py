from pydantic import BaseModel
from typing import Optional
from enum import Enum


class ErrorCode(str, Enum):
    # Auth related
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Request related
    VALIDATION_FAILED = "VALIDATION_001"
    NOT_FOUND = "NOT_FOUND_001"
    CONFLICT = "CONFLICT_001"

    # Store / downstream related
    DEPENDENCY_UNAVAILABLE = "DEPENDENCY_001"
    INTERNAL_ERROR = "INTERNAL_001"


class Error(BaseModel):
    code: ErrorCode
    message: str
    details: Optional[dict] = None


class BaseResponse(BaseModel):
    success: bool = True
    data: Optional[dict] = None
    error: Optional[Error] = None
    meta: Optional[dict] = None
