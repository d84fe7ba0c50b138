import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Enum, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from marketapi.models.base import BigIntPK, BaseModel


class CustomerSegmentEnum(enum.Enum):
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"


class CustomerStatusEnum(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Customer(BaseModel):
    """
    구매자 및 누적 구매 지표

    total_spent / total_orders / last_order_date 는 정산 경로에서만
    원자적 증감 연산으로 갱신되며, segment 는 매 갱신마다 total_spent 로부터 재계산됩니다.
    created_at 이 가입일(join date) 역할을 합니다.
    """

    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[CustomerStatusEnum] = mapped_column(
        Enum(CustomerStatusEnum, values_callable=lambda e: [m.value for m in e]),
        default=CustomerStatusEnum.ACTIVE,
        nullable=False,
    )
    segment: Mapped[CustomerSegmentEnum] = mapped_column(
        Enum(CustomerSegmentEnum, values_callable=lambda e: [m.value for m in e]),
        default=CustomerSegmentEnum.BRONZE,
        nullable=False,
        index=True,
    )
    # 관리자가 수동으로 등급을 지정한 시각 (다음 구매 시 자동 재계산으로 덮어씀)
    segment_overridden_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    total_spent: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    total_orders: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_order_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self):
        return f"<Customer(id={self.id}, user_id={self.user_id}, segment={self.segment})>"
