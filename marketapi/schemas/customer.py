from pydantic import BaseModel, Field
from typing import Dict, Optional
from datetime import datetime

from marketapi.models.customer import CustomerSegmentEnum, CustomerStatusEnum


class CustomerResponse(BaseModel):
    """구매자 정보 및 누적 지표"""

    id: int
    user_id: str
    name: str
    email: str
    phone: Optional[str] = None
    status: CustomerStatusEnum
    segment: CustomerSegmentEnum
    total_spent: float
    total_orders: int
    last_order_date: Optional[datetime] = None
    segment_overridden_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CustomerSegmentResponse(BaseModel):
    """구매자 등급 조회 응답"""

    customer_id: int = Field(..., description="구매자 ID")
    segment: CustomerSegmentEnum = Field(..., description="현재 등급")
    total_spent: float = Field(..., description="누적 구매 금액")
    total_orders: int = Field(..., description="누적 주문 수")
    overridden: bool = Field(False, description="관리자 수동 지정 여부")


class SegmentOverrideRequest(BaseModel):
    """관리자 등급 수동 지정 요청"""

    segment: CustomerSegmentEnum = Field(..., description="지정할 등급")
    reason: Optional[str] = Field(None, max_length=255, description="지정 사유")


class SegmentDistributionResponse(BaseModel):
    """등급별 구매자 수"""

    counts: Dict[CustomerSegmentEnum, int] = Field(..., description="등급별 구매자 수")
    total_customers: int = Field(..., description="전체 구매자 수")
