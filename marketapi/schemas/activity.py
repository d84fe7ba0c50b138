from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from datetime import datetime

from marketapi.models.activity import ActivityTypeEnum


class ActivityLogCreate(BaseModel):
    user_id: str
    type: ActivityTypeEnum
    customer_id: Optional[int] = None
    product_id: Optional[int] = None
    transaction_id: Optional[int] = None
    details: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class ActivityLogResponse(BaseModel):
    """활동 로그 항목"""

    id: int
    user_id: str
    type: ActivityTypeEnum
    customer_id: Optional[int] = None
    product_id: Optional[int] = None
    transaction_id: Optional[int] = None
    details: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime

    class Config:
        from_attributes = True
