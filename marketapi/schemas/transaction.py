from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional
from datetime import datetime

from marketapi.models.transaction import PaymentStatusEnum, TransactionStatusEnum


class TransactionMeta(BaseModel):
    """
    거래 메타데이터

    인식되는 키만 허용하며, 알 수 없는 키는 입력 단계에서 거부합니다.
    """

    model_config = ConfigDict(extra="forbid")

    tx_ref: Optional[str] = Field(None, max_length=128, description="결제 요청 참조값")
    gateway_reference: Optional[str] = Field(
        None, max_length=128, description="게이트웨이 거래 ID"
    )
    customer_name: Optional[str] = Field(None, max_length=255)
    product_name: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)
    profit: Optional[float] = Field(None, ge=0, description="명시적 수익 (없으면 기본 마진 적용)")


class TransactionCreate(BaseModel):
    """거래 생성 요청"""

    customer_id: int = Field(..., gt=0)
    product_id: int = Field(..., gt=0)
    amount: float = Field(..., gt=0, description="거래 금액")
    currency: Optional[str] = Field(None, max_length=8)
    payment_method: Optional[str] = Field(None, max_length=50)
    reference: Optional[str] = Field(None, max_length=128)
    meta: TransactionMeta = Field(default_factory=TransactionMeta)


class TransactionResponse(BaseModel):
    """거래 정보"""

    id: int
    reference: Optional[str] = None
    customer_id: int
    product_id: int
    amount: float
    currency: str
    payment_method: str
    status: TransactionStatusEnum
    payment_status: PaymentStatusEnum
    meta: TransactionMeta = Field(default_factory=TransactionMeta)
    settled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TransactionStatusUpdateRequest(BaseModel):
    """거래 상태 변경 요청 (결제 웹훅 처리 경로와 동일)"""

    status: Optional[TransactionStatusEnum] = None
    payment_status: Optional[PaymentStatusEnum] = None


class TransactionStatusUpdateResponse(BaseModel):
    transaction: TransactionResponse
    settled: bool = Field(False, description="이번 변경으로 정산이 수행되었는지 여부")
    sale_id: Optional[int] = None


class TransactionStatsResponse(BaseModel):
    """상태별 거래 통계"""

    total_count: int
    total_amount: float
    status_counts: Dict[TransactionStatusEnum, int]
    payment_status_counts: Dict[PaymentStatusEnum, int]
