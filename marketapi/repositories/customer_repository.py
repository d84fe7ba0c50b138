from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from marketapi.models.customer import Customer as CustomerModel, CustomerSegmentEnum
from marketapi.repositories.base import BaseRepository
from marketapi.schemas.customer import CustomerResponse


class CustomerRepository(BaseRepository[CustomerModel, CustomerResponse]):
    """구매자 리포지토리 - 누적 지표는 원자적 증감으로만 변경"""

    def __init__(self, db: Session):
        super().__init__(CustomerModel, CustomerResponse, db)

    def get_model(self, customer_id: int) -> Optional[CustomerModel]:
        self._ensure_clean_session()
        return self._get_model(customer_id)

    def get_by_user_id(self, user_id: str) -> Optional[CustomerResponse]:
        return self.get_by_field("user_id", user_id)

    def apply_spend(
        self, customer_id: int, amount: Decimal, ordered_at: datetime
    ) -> Optional[Decimal]:
        """
        구매 반영: total_spent += amount, total_orders += 1, last_order_date = ordered_at

        커밋하지 않습니다. 갱신 후의 total_spent 를 반환하며, 대상이 없으면 None.
        """
        result = self.db.execute(
            update(CustomerModel)
            .where(CustomerModel.id == customer_id)
            .values(
                total_spent=CustomerModel.total_spent + amount,
                total_orders=CustomerModel.total_orders + 1,
                last_order_date=ordered_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None

        total_spent = (
            self.db.query(CustomerModel.total_spent)
            .filter(CustomerModel.id == customer_id)
            .scalar()
        )
        return Decimal(str(total_spent))

    def set_segment(
        self,
        customer_id: int,
        segment: CustomerSegmentEnum,
        overridden_at: Optional[datetime] = None,
    ) -> None:
        """등급 저장 (overridden_at 이 None 이면 자동 재계산으로 간주하여 수동 지정 표시 해제)"""
        self.db.execute(
            update(CustomerModel)
            .where(CustomerModel.id == customer_id)
            .values(segment=segment, segment_overridden_at=overridden_at)
            .execution_options(synchronize_session=False)
        )

    def count_by_segment(self) -> Dict[CustomerSegmentEnum, int]:
        self._ensure_clean_session()
        rows = (
            self.db.query(CustomerModel.segment, func.count(CustomerModel.id))
            .group_by(CustomerModel.segment)
            .all()
        )
        return {segment: count for segment, count in rows}
