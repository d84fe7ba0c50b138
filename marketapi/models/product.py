import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketapi.models.base import BigIntPK, BaseModel


class PlatformEnum(enum.Enum):
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    TWITTER = "twitter"
    WHATSAPP = "whatsapp"
    YOUTUBE = "youtube"
    TIKTOK = "tiktok"
    FOREIGN_NUMBER = "foreignnumber"
    WHATSAPP_NUMBER = "whatsappnumber"


class ProductStatusEnum(enum.Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    PENDING = "pending"
    DELETED = "deleted"


class Product(BaseModel):
    """
    판매 대상 소셜 미디어 계정

    sales_* / *_views / popularity_score 는 파생 지표로,
    정산(settlement)과 조회 기록에서만 원자적 증감 연산으로 갱신됩니다.
    """

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        Index("idx_products_status_popularity", "status", "popularity_score"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    seller_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    type: Mapped[PlatformEnum] = mapped_column(
        Enum(PlatformEnum, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    username: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[ProductStatusEnum] = mapped_column(
        Enum(ProductStatusEnum, values_callable=lambda e: [m.value for m in e]),
        default=ProductStatusEnum.AVAILABLE,
        nullable=False,
    )
    price: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    about: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # 계정 통계
    followers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    engagement: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    age: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # 계정 나이 (개월)
    average_likes: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    average_comments: Mapped[float] = mapped_column(Float, default=0, nullable=False)
    two_factor_enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    original_email_available: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # 계정 자격 증명 (민감 정보 - 목록/리포트 응답에 포함하지 않음)
    account_email: Mapped[str] = mapped_column(Text, default="", nullable=False)
    account_password: Mapped[str] = mapped_column(Text, default="", nullable=False)
    account_phone_number: Mapped[str] = mapped_column(Text, default="", nullable=False)
    additional_info: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # 파생 지표
    total_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unique_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sales_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_revenue: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=0, nullable=False
    )
    last_sale_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    popularity_score: Mapped[float] = mapped_column(Float, default=0, nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, type={self.type}, status={self.status})>"
