import enum
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketapi.models.base import BigIntPK, Base, BaseModel


class ActivityTypeEnum(enum.Enum):
    PURCHASE = "purchase"
    VIEW = "view"
    LOGIN = "login"
    UPDATE_PROFILE = "update_profile"
    OTHER = "other"


class ActivityLog(BaseModel):
    """
    사용자 활동 로그 (보존 기간 30일)

    보존 기간이 지난 레코드는 물리적으로 삭제되기 전이라도 모든 조회/집계에서 제외됩니다.
    """

    __tablename__ = "activity_logs"
    __table_args__ = (
        Index("idx_activity_logs_user_type_created", "user_id", "type", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    customer_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=True
    )
    product_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("products.id"), nullable=True
    )
    transaction_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("transactions.id"), nullable=True
    )
    type: Mapped[ActivityTypeEnum] = mapped_column(
        Enum(ActivityTypeEnum, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    details: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)


class ProductView(Base):
    """
    상품 조회 기록 (보존 기간 24시간)

    (product_id, viewer_id) 기준 최근 24시간 내 조회 여부로 순 조회수(unique view)를 판정합니다.
    """

    __tablename__ = "product_views"
    __table_args__ = (
        Index("idx_product_views_product_viewer_time", "product_id", "viewer_id", "viewed_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id"), nullable=False
    )
    viewer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    is_unique: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    viewed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )
