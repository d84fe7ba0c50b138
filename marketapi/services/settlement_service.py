from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from marketapi.config import Settings, settings as default_settings
from marketapi.core.exceptions import ConflictError, DependencyError, ValidationError
from marketapi.models.activity import ActivityTypeEnum
from marketapi.models.transaction import PaymentStatusEnum, TransactionStatusEnum
from marketapi.repositories.product_repository import ProductRepository
from marketapi.repositories.sale_repository import SaleRepository
from marketapi.repositories.transaction_repository import TransactionRepository
from marketapi.schemas.activity import ActivityLogCreate
from marketapi.schemas.sale import SaleResponse
from marketapi.schemas.transaction import TransactionResponse
from marketapi.services.activity_service import ActivityService
from marketapi.services.customer_service import CustomerService
from marketapi.services.metrics_service import default_profit
from marketapi.services.product_service import ProductService
from marketapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class SettlementService:
    """
    거래 정산 서비스

    결제 완료(completed, paid)된 거래를 매출(Sale)로 확정하고
    상품/구매자 누적 지표와 활동 로그를 하나의 DB 트랜잭션으로 갱신합니다.

    멱등성:
    - sales.transaction_id 유니크 제약으로 거래당 매출 1건만 생성
    - 중복 호출(웹훅 재전송, 동시 요청)은 기존 매출을 그대로 반환

    원자성:
    - 매출 생성 ~ 정산 표시까지 단일 트랜잭션, 중간 실패 시 전체 롤백 후 DependencyError
    - 롤백 후 재시도는 처음부터 다시 수행되며 이중 반영되지 않음
    """

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.transaction_repo = TransactionRepository(db)
        self.sale_repo = SaleRepository(db)
        self.product_repo = ProductRepository(db)
        self.product_service = ProductService(db, settings=settings)
        self.customer_service = CustomerService(db)
        self.activity_service = ActivityService(db, settings=settings)

    def settle_transaction(self, transaction_id: int) -> SaleResponse:
        """거래 정산 - 같은 거래에 대해 여러 번 호출해도 매출은 1건

        Args:
            transaction_id: 거래 ID

        Returns:
            SaleResponse: 생성되었거나 이미 존재하던 매출

        Raises:
            ValidationError: 알 수 없는 거래 또는 정산 대상 상태(completed, paid)가 아닌 거래
            DependencyError: 지표 갱신 중 실패 (전체 롤백됨, 재시도 가능)
        """
        transaction = self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise ValidationError(
                f"Unknown transaction {transaction_id}",
                {"transaction_id": transaction_id},
            )

        if not self._is_settleable(transaction):
            raise ValidationError(
                "Transaction is not completed and paid",
                {
                    "transaction_id": transaction_id,
                    "status": transaction.status.value,
                    "payment_status": transaction.payment_status.value,
                },
            )

        existing = self.sale_repo.get_by_transaction_id(transaction_id)
        if existing is not None:
            logger.info(
                f"Transaction {transaction_id} already settled (sale {existing.id}), returning existing sale"
            )
            return existing

        now = utc_now()

        try:
            sale = self._create_sale(transaction, now)
        except IntegrityError:
            self.db.rollback()
            return self._resolve_duplicate(transaction_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create sale for transaction {transaction_id}: {str(e)}")
            raise DependencyError(
                f"Sale for transaction {transaction_id} could not be created",
                {"transaction_id": transaction_id, "cause": type(e).__name__},
            ) from e

        try:
            self.product_service.apply_sale(
                transaction.product_id, Decimal(str(transaction.amount)), now
            )
            segment = self.customer_service.update_customer_spend(
                transaction.customer_id, transaction.amount, ordered_at=now, commit=False
            )
            customer = self.customer_service.get_customer(transaction.customer_id)
            self.activity_service.log_activity(
                self._purchase_activity(transaction, sale, customer.user_id),
                created_at=now,
                commit=False,
            )
            self.transaction_repo.mark_settled(transaction_id, now)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(
                f"Settlement of transaction {transaction_id} rolled back: {type(e).__name__}: {str(e)}"
            )
            raise DependencyError(
                f"Settlement of transaction {transaction_id} failed and was rolled back",
                {"transaction_id": transaction_id, "cause": type(e).__name__},
            ) from e

        logger.info(
            f"Transaction {transaction_id} settled: sale {sale.id}, amount {sale.amount} "
            f"{sale.currency}, customer {transaction.customer_id} -> {segment.value}"
        )
        return sale

    @staticmethod
    def _is_settleable(transaction: TransactionResponse) -> bool:
        return (
            transaction.status == TransactionStatusEnum.COMPLETED
            and transaction.payment_status == PaymentStatusEnum.PAID
        )

    def _create_sale(self, transaction: TransactionResponse, now: datetime) -> SaleResponse:
        """매출 생성 (상품 유형/지역은 현재 상품 값을 스냅샷으로 복사)"""
        product = self.product_repo.get_model(transaction.product_id)
        if product is None:
            raise ValidationError(
                f"Product {transaction.product_id} of transaction {transaction.id} not found"
            )

        amount = Decimal(str(transaction.amount))
        return self.sale_repo.insert(
            transaction_id=transaction.id,
            product_id=transaction.product_id,
            customer_id=transaction.customer_id,
            amount=amount,
            quantity=1,
            profit=self._profit_for(transaction, amount),
            currency=transaction.currency,
            payment_method=transaction.payment_method,
            status="completed",
            region=product.region,
            product_type=product.type.value,
            created_at=now,
        )

    def _profit_for(self, transaction: TransactionResponse, amount: Decimal) -> Decimal:
        explicit: Optional[float] = transaction.meta.profit
        if explicit is not None:
            return Decimal(str(explicit))
        return default_profit(amount, self.settings.DEFAULT_PROFIT_MARGIN)

    def _resolve_duplicate(self, transaction_id: int) -> SaleResponse:
        """유니크 제약 위반 = 다른 요청이 먼저 정산 완료. 기존 매출을 반환"""
        existing = self.sale_repo.get_by_transaction_id(transaction_id)
        if existing is None:
            raise ConflictError(
                f"Concurrent settlement of transaction {transaction_id} detected but the sale could not be loaded",
                {"transaction_id": transaction_id},
            )

        logger.info(
            f"Transaction {transaction_id} settled concurrently by another request (sale {existing.id})"
        )
        return existing

    @staticmethod
    def _purchase_activity(
        transaction: TransactionResponse, sale: SaleResponse, user_id: str
    ) -> ActivityLogCreate:
        meta = {"sale_id": sale.id, "amount": str(sale.amount), "currency": sale.currency}
        if transaction.meta.tx_ref:
            meta["tx_ref"] = transaction.meta.tx_ref

        return ActivityLogCreate(
            user_id=user_id,
            type=ActivityTypeEnum.PURCHASE,
            customer_id=transaction.customer_id,
            product_id=transaction.product_id,
            transaction_id=transaction.id,
            details=transaction.meta.product_name or f"Purchase of product {transaction.product_id}",
            meta=meta,
        )
