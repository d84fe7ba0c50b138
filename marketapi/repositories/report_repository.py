"""
리포트 집계 리포지토리

대시보드/매출 리포트에 필요한 구간 집계 쿼리만 모아 둔 읽기 전용 리포지토리입니다.
모든 구간은 반개구간 [start, end) 이며, 일별 버킷 키는 UTC 달력 날짜(date)입니다.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, NamedTuple, Optional

from sqlalchemy import desc, func, text
from sqlalchemy.orm import Session

from marketapi.models.customer import Customer
from marketapi.models.product import Product, ProductStatusEnum
from marketapi.models.sale import Sale
from marketapi.models.transaction import Transaction
from marketapi.utils.date_utils import to_date

logger = logging.getLogger(__name__)

COMPLETED_SALE = "completed"


class DailySales(NamedTuple):
    day: date
    revenue: Decimal
    profit: Decimal
    orders: int


class SalesTotals(NamedTuple):
    revenue: Decimal
    profit: Decimal
    orders: int
    customers: int


class RegionSales(NamedTuple):
    region: str
    revenue: Decimal
    orders: int


class ProductSales(NamedTuple):
    product_id: int
    name: Optional[str]
    price: Decimal
    status: ProductStatusEnum
    units: int
    revenue: Decimal


def _decimal(value) -> Decimal:
    return Decimal(str(value)) if value is not None else Decimal("0")


class ReportRepository:
    """구간 집계 전용 리포지토리"""

    def __init__(self, db: Session):
        self.db = db

    def apply_statement_timeout(self, timeout_ms: int) -> None:
        """
        현재 트랜잭션의 쿼리 타임아웃 설정 (PostgreSQL 전용)

        SET LOCAL 은 트랜잭션 종료 시 자동 해제됩니다. 다른 DB 에서는 아무 것도 하지 않습니다.
        """
        if self.db.get_bind().dialect.name != "postgresql":
            return
        self.db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))

    def _sales_query(self, query, start: datetime, end: datetime, region: Optional[str]):
        query = query.filter(
            Sale.created_at >= start,
            Sale.created_at < end,
            Sale.status == COMPLETED_SALE,
        )
        if region:
            query = query.filter(Sale.region == region)
        return query

    def daily_sales(
        self, start: datetime, end: datetime, region: Optional[str] = None
    ) -> List[DailySales]:
        """일별 매출/수익/주문 수 (매출이 없는 날은 포함되지 않음)"""
        day = func.date(Sale.created_at)
        rows = (
            self._sales_query(
                self.db.query(
                    day.label("day"),
                    func.sum(Sale.amount),
                    func.sum(Sale.profit),
                    func.count(Sale.id),
                ),
                start,
                end,
                region,
            )
            .group_by(day)
            .order_by(day)
            .all()
        )
        return [
            DailySales(to_date(d), _decimal(revenue), _decimal(profit), int(orders))
            for d, revenue, profit, orders in rows
        ]

    def sales_totals(
        self, start: datetime, end: datetime, region: Optional[str] = None
    ) -> SalesTotals:
        row = self._sales_query(
            self.db.query(
                func.sum(Sale.amount),
                func.sum(Sale.profit),
                func.count(Sale.id),
                func.count(func.distinct(Sale.customer_id)),
            ),
            start,
            end,
            region,
        ).one()
        revenue, profit, orders, customers = row
        return SalesTotals(_decimal(revenue), _decimal(profit), int(orders or 0), int(customers or 0))

    def regional_sales(
        self, start: datetime, end: datetime, region: Optional[str] = None
    ) -> List[RegionSales]:
        """지역별 매출 (지역 정보가 없는 매출 제외)"""
        rows = (
            self._sales_query(
                self.db.query(Sale.region, func.sum(Sale.amount), func.count(Sale.id)),
                start,
                end,
                region,
            )
            .filter(Sale.region.isnot(None))
            .group_by(Sale.region)
            .order_by(desc(func.sum(Sale.amount)), Sale.region)
            .all()
        )
        return [RegionSales(r, _decimal(revenue), int(orders)) for r, revenue, orders in rows]

    def top_products(
        self,
        start: datetime,
        end: datetime,
        limit: int,
        region: Optional[str] = None,
    ) -> List[ProductSales]:
        """구간 내 매출 상위 상품"""
        revenue = func.sum(Sale.amount)
        rows = (
            self._sales_query(
                self.db.query(
                    Product.id,
                    Product.username,
                    Product.price,
                    Product.status,
                    func.count(Sale.id),
                    revenue,
                ).join(Product, Product.id == Sale.product_id),
                start,
                end,
                region,
            )
            .group_by(Product.id, Product.username, Product.price, Product.status)
            .order_by(desc(revenue), Product.id)
            .limit(limit)
            .all()
        )
        return [
            ProductSales(pid, name, _decimal(price), status, int(units), _decimal(rev))
            for pid, name, price, status, units, rev in rows
        ]

    def distinct_products_sold(
        self, start: datetime, end: datetime, region: Optional[str] = None
    ) -> int:
        return int(
            self._sales_query(
                self.db.query(func.count(func.distinct(Sale.product_id))),
                start,
                end,
                region,
            ).scalar()
            or 0
        )

    def daily_new_customers(self, start: datetime, end: datetime) -> Dict[date, int]:
        day = func.date(Customer.created_at)
        rows = (
            self.db.query(day, func.count(Customer.id))
            .filter(Customer.created_at >= start, Customer.created_at < end)
            .group_by(day)
            .all()
        )
        return {to_date(d): int(count) for d, count in rows}

    def count_new_customers(self, start: datetime, end: datetime) -> int:
        return int(
            self.db.query(func.count(Customer.id))
            .filter(Customer.created_at >= start, Customer.created_at < end)
            .scalar()
            or 0
        )

    def count_transactions(self, start: datetime, end: datetime) -> int:
        return int(
            self.db.query(func.count(Transaction.id))
            .filter(Transaction.created_at >= start, Transaction.created_at < end)
            .scalar()
            or 0
        )

    def count_products(self, exclude_deleted: bool = True) -> int:
        query = self.db.query(func.count(Product.id))
        if exclude_deleted:
            query = query.filter(Product.status != ProductStatusEnum.DELETED)
        return int(query.scalar() or 0)

    def count_products_by_status(self, status: ProductStatusEnum) -> int:
        return int(
            self.db.query(func.count(Product.id))
            .filter(Product.status == status)
            .scalar()
            or 0
        )
