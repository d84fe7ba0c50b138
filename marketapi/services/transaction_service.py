from decimal import Decimal
from typing import Dict, FrozenSet, Optional
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketapi.config import Settings, settings as default_settings
from marketapi.core.exceptions import NotFoundError, ValidationError
from marketapi.models.product import ProductStatusEnum
from marketapi.models.transaction import PaymentStatusEnum, TransactionStatusEnum
from marketapi.repositories.customer_repository import CustomerRepository
from marketapi.repositories.product_repository import ProductRepository
from marketapi.repositories.transaction_repository import TransactionRepository
from marketapi.schemas.transaction import (
    TransactionCreate,
    TransactionResponse,
    TransactionStatsResponse,
    TransactionStatusUpdateRequest,
    TransactionStatusUpdateResponse,
)
from marketapi.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

# 허용되는 상태 전이 (같은 상태로의 갱신은 항상 허용되는 no-op)
STATUS_TRANSITIONS: Dict[TransactionStatusEnum, FrozenSet[TransactionStatusEnum]] = {
    TransactionStatusEnum.PENDING: frozenset(
        {
            TransactionStatusEnum.PROCESSING,
            TransactionStatusEnum.COMPLETED,
            TransactionStatusEnum.FAILED,
            TransactionStatusEnum.CANCELLED,
        }
    ),
    TransactionStatusEnum.PROCESSING: frozenset(
        {
            TransactionStatusEnum.COMPLETED,
            TransactionStatusEnum.FAILED,
            TransactionStatusEnum.CANCELLED,
        }
    ),
    TransactionStatusEnum.COMPLETED: frozenset(),
    TransactionStatusEnum.FAILED: frozenset(),
    TransactionStatusEnum.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS: Dict[PaymentStatusEnum, FrozenSet[PaymentStatusEnum]] = {
    PaymentStatusEnum.UNPAID: frozenset({PaymentStatusEnum.PAID, PaymentStatusEnum.FAILED}),
    PaymentStatusEnum.FAILED: frozenset({PaymentStatusEnum.PAID}),
    PaymentStatusEnum.PAID: frozenset({PaymentStatusEnum.REFUNDED}),
    PaymentStatusEnum.REFUNDED: frozenset(),
}


class TransactionService:
    """거래 생성/상태 전이 서비스

    (completed, paid) 상태 진입 시 SettlementService.settle_transaction 을
    명시적으로 호출합니다. 결제 웹훅 처리도 update_status 를 통해 같은 경로를 사용합니다.
    """

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.transaction_repo = TransactionRepository(db)
        self.customer_repo = CustomerRepository(db)
        self.product_repo = ProductRepository(db)
        self.settlement_service = SettlementService(db, settings=settings)

    def get_transaction(self, transaction_id: int) -> TransactionResponse:
        transaction = self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        return transaction

    def create_transaction(self, request: TransactionCreate) -> TransactionResponse:
        """거래 생성 (pending / unpaid)

        구매자와 상품이 존재해야 하며, 상품은 available 상태여야 합니다.
        """
        if self.customer_repo.get_by_id(request.customer_id) is None:
            raise NotFoundError(f"Customer {request.customer_id} not found")

        product = self.product_repo.get_by_id(request.product_id)
        if product is None:
            raise NotFoundError(f"Product {request.product_id} not found")
        if product.status != ProductStatusEnum.AVAILABLE:
            raise ValidationError(
                f"Product {request.product_id} is not available",
                {"status": product.status.value},
            )

        reference = request.reference or request.meta.tx_ref
        if reference and self.transaction_repo.get_by_reference(reference) is not None:
            raise ValidationError(
                "Transaction reference already exists", {"reference": reference}
            )

        meta = request.meta.model_dump(exclude_none=True)
        try:
            transaction = self.transaction_repo.create(
                reference=reference,
                customer_id=request.customer_id,
                product_id=request.product_id,
                amount=Decimal(str(request.amount)),
                currency=request.currency or self.settings.DEFAULT_CURRENCY,
                payment_method=request.payment_method or self.settings.DEFAULT_PAYMENT_METHOD,
                status=TransactionStatusEnum.PENDING,
                payment_status=PaymentStatusEnum.UNPAID,
                meta=meta,
            )
        except IntegrityError:
            raise ValidationError(
                "Transaction reference already exists", {"reference": reference}
            )

        logger.info(
            f"Transaction {transaction.id} created: customer {transaction.customer_id}, "
            f"product {transaction.product_id}, amount {transaction.amount} {transaction.currency}"
        )
        return transaction

    def update_status(
        self, transaction_id: int, request: TransactionStatusUpdateRequest
    ) -> TransactionStatusUpdateResponse:
        """거래 상태/결제 상태 변경

        (completed, paid) 상태가 되면 정산을 수행합니다. 이미 정산된 거래에 대한
        중복 완료 신호는 기존 매출을 반환하는 멱등 동작입니다.

        Raises:
            ValidationError: 알 수 없는 거래 또는 허용되지 않은 상태 전이
        """
        if request.status is None and request.payment_status is None:
            raise ValidationError("status or payment_status is required")

        transaction = self.transaction_repo.get_for_update(transaction_id)
        if transaction is None:
            raise ValidationError(
                f"Unknown transaction {transaction_id}",
                {"transaction_id": transaction_id},
            )

        new_status = request.status or transaction.status
        new_payment = request.payment_status or transaction.payment_status
        self._validate_transition(
            STATUS_TRANSITIONS, transaction.status, new_status, "status"
        )
        self._validate_transition(
            PAYMENT_TRANSITIONS, transaction.payment_status, new_payment, "payment_status"
        )

        previous = (transaction.status, transaction.payment_status)
        try:
            transaction.status = new_status
            transaction.payment_status = new_payment
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update transaction {transaction_id} status: {str(e)}")
            raise

        logger.info(
            f"Transaction {transaction_id} status {previous[0].value}/{previous[1].value} "
            f"-> {new_status.value}/{new_payment.value}"
        )

        sale = None
        if transaction.is_settled_state:
            sale = self.settlement_service.settle_transaction(transaction_id)

        return TransactionStatusUpdateResponse(
            transaction=self.get_transaction(transaction_id),
            settled=sale is not None,
            sale_id=sale.id if sale else None,
        )

    @staticmethod
    def _validate_transition(transitions, current, target, field: str) -> None:
        if current == target:
            return
        if target not in transitions[current]:
            raise ValidationError(
                f"Illegal {field} transition: {current.value} -> {target.value}",
                {"field": field, "from": current.value, "to": target.value},
            )

    def get_transaction_stats(
        self, customer_id: Optional[int] = None
    ) -> TransactionStatsResponse:
        """상태별 거래 통계 (customer_id 지정 시 해당 구매자만)"""
        status_counts, payment_counts, total_amount = self.transaction_repo.get_stats(
            customer_id
        )
        return TransactionStatsResponse(
            total_count=sum(status_counts.values()),
            total_amount=float(total_amount),
            status_counts={s: status_counts.get(s, 0) for s in TransactionStatusEnum},
            payment_status_counts={
                s: payment_counts.get(s, 0) for s in PaymentStatusEnum
            },
        )
