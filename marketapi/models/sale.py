"""
매출(Sale) 데이터 모델

정산이 완료된 거래 1건당 정확히 1개의 Sale 이 존재합니다.
transaction_id 유니크 제약이 중복 정산(웹훅 재전송, 동시 요청)을 저장소 수준에서 차단합니다.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import BigInteger, ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.schema import UniqueConstraint

from marketapi.models.base import BigIntPK, BaseModel


class Sale(BaseModel):
    """
    매출 기록 - 생성 후 변경되지 않음

    product_type / region 은 생성 시점의 Product 값을 복사해 둔 스냅샷입니다.
    이후 Product 가 바뀌어도 과거 매출 집계는 그대로 유지됩니다.
    """

    __tablename__ = "sales"
    __table_args__ = (
        UniqueConstraint("transaction_id", name="uq_sales_transaction_id"),
        Index("idx_sales_created_status", "created_at", "status"),
        Index("idx_sales_region_created", "region", "created_at"),
        Index("idx_sales_product_created", "product_id", "created_at"),
        Index("idx_sales_customer_created", "customer_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    transaction_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("transactions.id"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id"), nullable=False
    )
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    profit: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="completed", nullable=False)

    # 생성 시점 스냅샷
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    product_type: Mapped[str] = mapped_column(String(32), nullable=False)
