from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import desc, update
from sqlalchemy.orm import Session

from marketapi.models.activity import ProductView
from marketapi.models.product import Product as ProductModel, ProductStatusEnum
from marketapi.repositories.base import BaseRepository
from marketapi.schemas.product import ProductResponse

POPULAR_STATUSES = (ProductStatusEnum.AVAILABLE, ProductStatusEnum.SOLD)


class ProductRepository(BaseRepository[ProductModel, ProductResponse]):
    """
    상품 리포지토리

    sales_count / total_revenue / total_views / unique_views 는
    UPDATE ... SET col = col + :delta 형태의 원자적 증감으로만 변경합니다.
    """

    def __init__(self, db: Session):
        super().__init__(ProductModel, ProductResponse, db)

    def get_model(self, product_id: int) -> Optional[ProductModel]:
        """지표 계산용 ORM 인스턴스 조회 (항상 DB 최신값으로 갱신)"""
        self._ensure_clean_session()
        return self._get_model(product_id)

    def apply_sale(self, product_id: int, amount: Decimal, sold_at: datetime) -> bool:
        """
        판매 반영: 판매 건수/누적 매출 증가, 마지막 판매 시각 기록, 상태를 sold 로 변경

        커밋하지 않습니다 (정산 트랜잭션의 일부).

        Returns:
            bool: 대상 상품이 존재하여 갱신되었는지 여부
        """
        result = self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(
                sales_count=ProductModel.sales_count + 1,
                total_revenue=ProductModel.total_revenue + amount,
                last_sale_at=sold_at,
                status=ProductStatusEnum.SOLD,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_popularity(self, product_id: int, score: float) -> None:
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(popularity_score=score)
            .execution_options(synchronize_session=False)
        )

    def has_recent_view(self, product_id: int, viewer_id: str, since: datetime) -> bool:
        """since 이후 동일 조회자의 조회 기록 존재 여부"""
        return (
            self.db.query(ProductView.id)
            .filter(
                ProductView.product_id == product_id,
                ProductView.viewer_id == viewer_id,
                ProductView.viewed_at >= since,
            )
            .first()
            is not None
        )

    def record_view(
        self, product_id: int, viewer_id: str, is_unique: bool, viewed_at: datetime
    ) -> None:
        """조회 기록 추가 및 조회수 원자적 증가 (커밋하지 않음)"""
        self.db.add(
            ProductView(
                product_id=product_id,
                viewer_id=viewer_id,
                is_unique=is_unique,
                viewed_at=viewed_at,
            )
        )
        values = {"total_views": ProductModel.total_views + 1}
        if is_unique:
            values["unique_views"] = ProductModel.unique_views + 1

        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        self.db.flush()

    def purge_views_before(self, cutoff: datetime) -> int:
        """보존 기간이 지난 조회 기록 삭제 (커밋하지 않음)"""
        return (
            self.db.query(ProductView)
            .filter(ProductView.viewed_at < cutoff)
            .delete(synchronize_session=False)
        )

    def get_popular(self, limit: int) -> List[ProductModel]:
        """
        인기 상품 조회

        판매 이력이 있는 available/sold 상품을
        popularity_score → sales_count → total_revenue 내림차순으로 정렬
        """
        self._ensure_clean_session()
        return (
            self.db.query(ProductModel)
            .filter(
                ProductModel.status.in_(POPULAR_STATUSES),
                ProductModel.sales_count > 0,
            )
            .order_by(
                desc(ProductModel.popularity_score),
                desc(ProductModel.sales_count),
                desc(ProductModel.total_revenue),
                ProductModel.id,
            )
            .limit(limit)
            .all()
        )
