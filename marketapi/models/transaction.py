import enum
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from marketapi.models.base import BigIntPK, BaseModel


class TransactionStatusEnum(enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PaymentStatusEnum(enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Transaction(BaseModel):
    """
    구매 거래

    status = completed 이고 payment_status = paid 인 거래를 "정산 대상(settled)"으로 봅니다.
    settled_at 은 Sale 생성과 같은 DB 트랜잭션 안에서 기록됩니다.
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
        Index("idx_transactions_status_created", "status", "payment_status", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    # 결제 게이트웨이 참조값 (tx_ref 등)
    reference: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)
    customer_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("customers.id"), nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("products.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="NGN", nullable=False)
    payment_method: Mapped[str] = mapped_column(
        String(50), default="flutterwave", nullable=False
    )
    status: Mapped[TransactionStatusEnum] = mapped_column(
        Enum(TransactionStatusEnum, values_callable=lambda e: [m.value for m in e]),
        default=TransactionStatusEnum.PENDING,
        nullable=False,
    )
    payment_status: Mapped[PaymentStatusEnum] = mapped_column(
        Enum(PaymentStatusEnum, values_callable=lambda e: [m.value for m in e]),
        default=PaymentStatusEnum.UNPAID,
        nullable=False,
    )
    # 인식되는 키는 schemas.transaction.TransactionMeta 참고
    meta: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    settled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_settled_state(self) -> bool:
        return (
            self.status == TransactionStatusEnum.COMPLETED
            and self.payment_status == PaymentStatusEnum.PAID
        )
