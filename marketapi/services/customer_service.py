from datetime import datetime
from decimal import Decimal
from typing import Optional, Union
import logging

from sqlalchemy.orm import Session

from marketapi.core.exceptions import NotFoundError, ValidationError
from marketapi.models.customer import CustomerSegmentEnum
from marketapi.repositories.customer_repository import CustomerRepository
from marketapi.schemas.customer import (
    CustomerResponse,
    CustomerSegmentResponse,
    SegmentDistributionResponse,
    SegmentOverrideRequest,
)
from marketapi.services.metrics_service import segment_for_spend
from marketapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class CustomerService:
    """구매자 등급(segment) 관련 비즈니스 로직"""

    def __init__(self, db: Session):
        self.db = db
        self.customer_repo = CustomerRepository(db)

    def get_customer(self, customer_id: int) -> CustomerResponse:
        customer = self.customer_repo.get_by_id(customer_id)
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return customer

    def get_customer_segment(self, customer_id: int) -> CustomerSegmentResponse:
        """구매자 등급 조회

        Args:
            customer_id: 구매자 ID

        Returns:
            CustomerSegmentResponse: 현재 등급과 누적 지표
        """
        customer = self.get_customer(customer_id)
        return CustomerSegmentResponse(
            customer_id=customer.id,
            segment=customer.segment,
            total_spent=customer.total_spent,
            total_orders=customer.total_orders,
            overridden=customer.segment_overridden_at is not None,
        )

    def update_customer_spend(
        self,
        customer_id: int,
        amount: Union[Decimal, float, int],
        ordered_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> CustomerSegmentEnum:
        """구매 금액 반영 후 등급 재계산

        total_spent / total_orders 는 원자적 증감으로 갱신하고,
        등급은 갱신 후의 total_spent 로 다시 계산합니다.

        Args:
            customer_id: 구매자 ID
            amount: 구매 금액 (0 보다 커야 함)
            ordered_at: 주문 시각 (기본값: 현재)
            commit: False 이면 호출자 트랜잭션에 포함 (정산 경로)

        Returns:
            CustomerSegmentEnum: 재계산된 등급
        """
        amount = Decimal(str(amount))
        if amount <= 0:
            raise ValidationError("Spend amount must be positive", {"amount": str(amount)})

        total_spent = self.customer_repo.apply_spend(
            customer_id, amount, ordered_at or utc_now()
        )
        if total_spent is None:
            raise NotFoundError(f"Customer {customer_id} not found")

        segment = segment_for_spend(total_spent)
        self.customer_repo.set_segment(customer_id, segment)

        if commit:
            self.db.commit()

        logger.info(
            f"Customer {customer_id} spend +{amount} -> total {total_spent}, segment {segment.value}"
        )
        return segment

    def override_segment(
        self, customer_id: int, request: SegmentOverrideRequest, admin_id: str
    ) -> CustomerSegmentResponse:
        """관리자 수동 등급 지정

        다음 구매 정산 시 total_spent 기준으로 다시 계산되어 덮어써집니다.
        """
        customer = self.get_customer(customer_id)
        try:
            self.customer_repo.set_segment(
                customer_id, request.segment, overridden_at=utc_now()
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to override segment for customer {customer_id}: {str(e)}")
            raise

        logger.info(
            f"Admin {admin_id} overrode segment of customer {customer_id}: "
            f"{customer.segment.value} -> {request.segment.value} ({request.reason or '-'})"
        )
        return self.get_customer_segment(customer_id)

    def get_segment_distribution(self) -> SegmentDistributionResponse:
        """등급별 구매자 수 (구매자가 없는 등급은 0)"""
        counts = self.customer_repo.count_by_segment()
        distribution = {segment: counts.get(segment, 0) for segment in CustomerSegmentEnum}
        return SegmentDistributionResponse(
            counts=distribution, total_customers=sum(distribution.values())
        )
