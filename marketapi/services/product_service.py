from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging

from sqlalchemy.orm import Session

from marketapi.config import Settings, settings as default_settings
from marketapi.core.exceptions import NotFoundError, ValidationError
from marketapi.models.activity import ActivityTypeEnum
from marketapi.repositories.activity_repository import ActivityRepository
from marketapi.repositories.product_repository import ProductRepository
from marketapi.schemas.activity import ActivityLogCreate
from marketapi.schemas.product import (
    PopularProduct,
    PopularProductsResponse,
    ProductMetricsResponse,
    ProductResponse,
    ProductViewResult,
)
from marketapi.services.metrics_service import (
    average_sale_price,
    conversion_rate,
    popularity_score,
)
from marketapi.utils.date_utils import utc_now

logger = logging.getLogger(__name__)


class ProductService:
    """상품 조회수, 인기 점수, 파생 지표 관련 비즈니스 로직"""

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.product_repo = ProductRepository(db)
        self.activity_repo = ActivityRepository(db)

    def get_product(self, product_id: int) -> ProductResponse:
        product = self.product_repo.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    def record_view(
        self, product_id: int, viewer_id: str, now: Optional[datetime] = None
    ) -> ProductViewResult:
        """상품 조회 기록

        total_views 는 항상 1 증가, unique_views 는 최근 24시간 내
        같은 조회자의 조회 기록이 없을 때만 1 증가합니다.

        Args:
            product_id: 상품 ID
            viewer_id: 조회자 ID (사용자 ID 또는 익명 세션 ID)

        Returns:
            ProductViewResult: 순 조회 여부와 갱신된 조회수
        """
        if not viewer_id or not viewer_id.strip():
            raise ValidationError("viewer_id is required")

        self.get_product(product_id)
        now = now or utc_now()
        since = now - self.settings.view_dedup_window

        try:
            is_unique = not self.product_repo.has_recent_view(product_id, viewer_id, since)
            self.product_repo.record_view(product_id, viewer_id, is_unique, now)
            self.activity_repo.add(
                ActivityLogCreate(
                    user_id=viewer_id,
                    type=ActivityTypeEnum.VIEW,
                    product_id=product_id,
                ),
                created_at=now,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to record view for product {product_id}: {str(e)}")
            raise

        product = self.product_repo.get_model(product_id)
        return ProductViewResult(
            product_id=product_id,
            is_unique=is_unique,
            total_views=product.total_views,
            unique_views=product.unique_views,
        )

    def apply_sale(self, product_id: int, amount: Decimal, sold_at: datetime) -> float:
        """판매 반영 및 인기 점수 재계산 (커밋하지 않음, 정산 트랜잭션 내부용)

        Returns:
            float: 재계산된 인기 점수
        """
        if not self.product_repo.apply_sale(product_id, amount, sold_at):
            raise NotFoundError(f"Product {product_id} not found")

        product = self.product_repo.get_model(product_id)
        score = popularity_score(
            product.sales_count, product.unique_views, product.last_sale_at, now=sold_at
        )
        self.product_repo.set_popularity(product_id, score)
        return score

    def get_product_metrics(self, product_id: int) -> ProductMetricsResponse:
        """상품 파생 지표 (평균 판매가, 전환율 포함)"""
        product = self.product_repo.get_model(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        return ProductMetricsResponse(
            product_id=product.id,
            total_views=product.total_views,
            unique_views=product.unique_views,
            sales_count=product.sales_count,
            total_revenue=float(product.total_revenue),
            average_sale_price=average_sale_price(
                product.total_revenue, product.sales_count, product.price
            ),
            conversion_rate=conversion_rate(product.sales_count, product.unique_views),
            popularity_score=product.popularity_score,
            last_sale_at=product.last_sale_at,
        )

    def get_popular_products(self, limit: Optional[int] = None) -> PopularProductsResponse:
        """인기 상품 목록"""
        limit = limit or self.settings.POPULAR_PRODUCTS_LIMIT
        if limit < 1 or limit > 100:
            raise ValidationError("limit must be between 1 and 100", {"limit": limit})

        products = [
            PopularProduct.model_validate(product).model_copy(
                update={
                    "conversion_rate": conversion_rate(
                        product.sales_count, product.unique_views
                    )
                }
            )
            for product in self.product_repo.get_popular(limit)
        ]
        return PopularProductsResponse(products=products, total_count=len(products))
