from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from marketapi.models.transaction import (
    PaymentStatusEnum,
    Transaction as TransactionModel,
    TransactionStatusEnum,
)
from marketapi.repositories.base import BaseRepository
from marketapi.schemas.transaction import TransactionResponse


class TransactionRepository(BaseRepository[TransactionModel, TransactionResponse]):
    """거래 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(TransactionModel, TransactionResponse, db)

    def get_by_reference(self, reference: str) -> Optional[TransactionResponse]:
        return self.get_by_field("reference", reference)

    def get_for_update(self, transaction_id: int) -> Optional[TransactionModel]:
        """상태 변경용 행 잠금 조회 (PostgreSQL 에서 SELECT ... FOR UPDATE)"""
        self._ensure_clean_session()
        return self._get_model(transaction_id, for_update=True)

    def mark_settled(self, transaction_id: int, settled_at: datetime) -> None:
        """정산 완료 표시 (커밋하지 않음, 이미 표시된 경우 유지)"""
        self.db.execute(
            update(TransactionModel)
            .where(
                TransactionModel.id == transaction_id,
                TransactionModel.settled_at.is_(None),
            )
            .values(settled_at=settled_at)
            .execution_options(synchronize_session=False)
        )

    def get_stats(
        self, customer_id: Optional[int] = None
    ) -> Tuple[Dict[TransactionStatusEnum, int], Dict[PaymentStatusEnum, int], Decimal]:
        """상태별/결제상태별 건수 및 총 금액"""
        self._ensure_clean_session()

        def _scoped(query):
            if customer_id is not None:
                query = query.filter(TransactionModel.customer_id == customer_id)
            return query

        status_rows = _scoped(
            self.db.query(TransactionModel.status, func.count(TransactionModel.id))
        ).group_by(TransactionModel.status)

        payment_rows = _scoped(
            self.db.query(
                TransactionModel.payment_status, func.count(TransactionModel.id)
            )
        ).group_by(TransactionModel.payment_status)

        total_amount = _scoped(
            self.db.query(func.coalesce(func.sum(TransactionModel.amount), 0))
        ).scalar()

        return (
            {status: count for status, count in status_rows.all()},
            {status: count for status, count in payment_rows.all()},
            Decimal(str(total_amount or 0)),
        )
