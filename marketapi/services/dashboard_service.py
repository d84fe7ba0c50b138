"""
대시보드/리포트 집계 서비스

모든 결과는 저장된 데이터와 요청 구간만으로 계산되며, 서비스 내부에 상태를 두지 않습니다.
구간은 반개구간 [start, end), 비교 구간은 바로 앞의 같은 길이 구간입니다.
"""

from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, TypeVar
import calendar
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketapi.config import Settings, settings as default_settings
from marketapi.core.exceptions import DependencyError, ValidationError
from marketapi.models.product import ProductStatusEnum
from marketapi.repositories.report_repository import ReportRepository
from marketapi.schemas.dashboard import (
    CustomerGrowth,
    CustomerGrowthPoint,
    DashboardMetricsResponse,
    DashboardOverviewResponse,
    MetricSummary,
    MonthlySalesPoint,
    ProductMetricsSummary,
    RegionalData,
    ReportWindow,
    RevenueMetrics,
    SalesReportRangeEnum,
    SalesReportResponse,
    SalesReportSummary,
    SalesTarget,
    SalesTrendPoint,
    TimeRangeEnum,
    TopProduct,
)
from marketapi.services.activity_service import ActivityService
from marketapi.services.metrics_service import (
    achievement_rate,
    classify_performance,
    growth_rate,
    monthly_revenue_target,
    weekly_revenue_target,
)
from marketapi.services.product_service import ProductService
from marketapi.utils.date_utils import (
    ensure_utc,
    iter_days,
    previous_window,
    start_of_day,
    trailing_window,
    utc_now,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TIME_RANGE_DAYS = {
    TimeRangeEnum.WEEKLY: 7,
    TimeRangeEnum.MONTHLY: 30,
}

TOP_PRODUCTS_LIMIT = 5


class DashboardService:
    """대시보드 개요/지표 및 매출 리포트 집계"""

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.report_repo = ReportRepository(db)
        self.product_service = ProductService(db, settings=settings)
        self.activity_service = ActivityService(db, settings=settings)

    # ------------------------------------------------------------------
    # 구간 계산
    # ------------------------------------------------------------------

    def resolve_window(
        self,
        time_range: Optional[TimeRangeEnum] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> ReportWindow:
        """명시적 start/end 또는 이름 있는 구간(weekly/monthly)을 집계 구간으로 변환

        Raises:
            ValidationError: start/end 중 하나만 지정, start >= end, 최대 구간 길이 초과
        """
        if start is not None or end is not None:
            if start is None or end is None:
                raise ValidationError("start and end must be given together")
            start, end = ensure_utc(start), ensure_utc(end)
        else:
            days = TIME_RANGE_DAYS[time_range or TimeRangeEnum.WEEKLY]
            start, end = trailing_window(days, now)

        return self._window(start, end)

    def _window(self, start: datetime, end: datetime) -> ReportWindow:
        if start >= end:
            raise ValidationError(
                "start must be before end",
                {"start": start.isoformat(), "end": end.isoformat()},
            )
        if end - start > timedelta(days=self.settings.MAX_REPORT_RANGE_DAYS):
            raise ValidationError(
                f"Report range must not exceed {self.settings.MAX_REPORT_RANGE_DAYS} days",
                {"start": start.isoformat(), "end": end.isoformat()},
            )

        previous_start, previous_end = previous_window(start, end)
        return ReportWindow(
            start=start,
            end=end,
            previous_start=previous_start,
            previous_end=previous_end,
        )

    def resolve_report_range(
        self, date_range: SalesReportRangeEnum, now: Optional[datetime] = None
    ) -> ReportWindow:
        """매출 리포트 구간: 오늘 / 최근 7일 / 이번 달 / 올해"""
        now = ensure_utc(now) if now else utc_now()

        if date_range == SalesReportRangeEnum.TODAY:
            start = start_of_day(now)
            end = start + timedelta(days=1)
        elif date_range == SalesReportRangeEnum.WEEK:
            start, end = trailing_window(7, now)
        elif date_range == SalesReportRangeEnum.MONTH:
            start = start_of_day(now).replace(day=1)
            days_in_month = calendar.monthrange(start.year, start.month)[1]
            end = start + timedelta(days=days_in_month)
        else:
            start = start_of_day(now).replace(month=1, day=1)
            end = start.replace(year=start.year + 1)

        return self._window(start, end)

    def _run_report(self, build: Callable[[], T]) -> T:
        """리포트 쿼리 실행 (타임아웃 적용, DB 오류는 DependencyError 로 변환)"""
        try:
            self.report_repo.apply_statement_timeout(self.settings.REPORT_QUERY_TIMEOUT_MS)
            result = build()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Report query failed: {type(e).__name__}: {str(e)}")
            raise DependencyError(
                "Report query failed or timed out", {"cause": type(e).__name__}
            ) from e
        return result

    # ------------------------------------------------------------------
    # 공통 집계
    # ------------------------------------------------------------------

    def _sales_trends(
        self, window: ReportWindow, region: Optional[str]
    ) -> List[SalesTrendPoint]:
        """일별 매출 버킷 (매출이 없는 날은 0 으로 채움)"""
        by_day = {
            row.day: row
            for row in self.report_repo.daily_sales(window.start, window.end, region)
        }
        points = []
        for day in iter_days(window.start, window.end):
            row = by_day.get(day)
            if row is None:
                points.append(SalesTrendPoint(date=day))
            else:
                points.append(
                    SalesTrendPoint(
                        date=day,
                        revenue=float(row.revenue),
                        profit=float(row.profit),
                        orders=row.orders,
                    )
                )
        return points

    def _regional_data(
        self, window: ReportWindow, region: Optional[str]
    ) -> List[RegionalData]:
        """지역별 매출과 지역별 직전 구간 대비 성장률"""
        previous = {
            row.region: row.revenue
            for row in self.report_repo.regional_sales(
                window.previous_start, window.previous_end, region
            )
        }
        return [
            RegionalData(
                region=row.region,
                revenue=float(row.revenue),
                orders=row.orders,
                previous_revenue=float(previous.get(row.region, 0)),
                growth=growth_rate(row.revenue, previous.get(row.region, 0)),
            )
            for row in self.report_repo.regional_sales(window.start, window.end, region)
        ]

    def _customer_growth(self, window: ReportWindow) -> CustomerGrowth:
        by_day = self.report_repo.daily_new_customers(window.start, window.end)
        daily = [
            CustomerGrowthPoint(date=day, new_customers=by_day.get(day, 0))
            for day in iter_days(window.start, window.end)
        ]
        total_new = self.report_repo.count_new_customers(window.start, window.end)
        previous_total = self.report_repo.count_new_customers(
            window.previous_start, window.previous_end
        )
        return CustomerGrowth(
            daily=daily,
            total_new=total_new,
            previous_total_new=previous_total,
            growth=growth_rate(total_new, previous_total),
        )

    # ------------------------------------------------------------------
    # 대시보드
    # ------------------------------------------------------------------

    def get_dashboard_overview(
        self,
        time_range: Optional[TimeRangeEnum] = TimeRangeEnum.WEEKLY,
        region: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> DashboardOverviewResponse:
        """대시보드 개요: 일별 매출 추이, 지역별 매출, 인기 상품, 신규 구매자 추이, 최근 활동"""
        window = self.resolve_window(time_range, start, end, now)

        def build() -> DashboardOverviewResponse:
            return DashboardOverviewResponse(
                window=window,
                region=region,
                sales_trends=self._sales_trends(window, region),
                regional_data=self._regional_data(window, region),
                popular_products=self.product_service.get_popular_products().products,
                customer_growth=self._customer_growth(window),
                recent_activities=self.activity_service.get_recent_activities(now=now),
            )

        overview = self._run_report(build)
        logger.info(
            f"Dashboard overview built for {window.start.isoformat()} ~ {window.end.isoformat()}"
            f" (region={region or 'all'})"
        )
        return overview

    def get_dashboard_metrics(
        self,
        time_range: Optional[TimeRangeEnum] = TimeRangeEnum.WEEKLY,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> DashboardMetricsResponse:
        """대시보드 지표: 매출 목표 달성률, 매출/구매자/거래/상품 성장률"""
        window = self.resolve_window(time_range, start, end, now)

        def build() -> DashboardMetricsResponse:
            current = self.report_repo.sales_totals(window.start, window.end)
            previous = self.report_repo.sales_totals(
                window.previous_start, window.previous_end
            )
            trends = self._sales_trends(window, None)

            new_customers = self.report_repo.count_new_customers(window.start, window.end)
            previous_customers = self.report_repo.count_new_customers(
                window.previous_start, window.previous_end
            )
            transactions = self.report_repo.count_transactions(window.start, window.end)
            previous_transactions = self.report_repo.count_transactions(
                window.previous_start, window.previous_end
            )
            sold = self.report_repo.distinct_products_sold(window.start, window.end)
            previous_sold = self.report_repo.distinct_products_sold(
                window.previous_start, window.previous_end
            )

            return DashboardMetricsResponse(
                window=window,
                sales_target=self._sales_target(window, float(current.revenue)),
                revenue=RevenueMetrics(
                    current=float(current.revenue),
                    previous=float(previous.revenue),
                    growth=growth_rate(current.revenue, previous.revenue),
                    trend=classify_performance([point.revenue for point in trends]),
                ),
                customers=MetricSummary(
                    current=new_customers,
                    previous=previous_customers,
                    growth=growth_rate(new_customers, previous_customers),
                ),
                transactions=MetricSummary(
                    current=transactions,
                    previous=previous_transactions,
                    growth=growth_rate(transactions, previous_transactions),
                ),
                products=ProductMetricsSummary(
                    total_products=self.report_repo.count_products(),
                    available_products=self.report_repo.count_products_by_status(
                        ProductStatusEnum.AVAILABLE
                    ),
                    sold_in_window=sold,
                    previous_sold=previous_sold,
                    growth=growth_rate(sold, previous_sold),
                ),
            )

        return self._run_report(build)

    def _sales_target(self, window: ReportWindow, achieved: float) -> SalesTarget:
        """구간 종료 시점의 달력 월 기준 목표 (7일 이하 구간은 주간 목표)"""
        month_index = (window.end - timedelta(microseconds=1)).month - 1
        base = self.settings.REVENUE_TARGET_BASE
        growth = self.settings.REVENUE_TARGET_MONTHLY_GROWTH

        monthly = monthly_revenue_target(month_index, base, growth)
        if window.end - window.start <= timedelta(days=7):
            target = weekly_revenue_target(month_index, base, growth)
        else:
            target = monthly

        return SalesTarget(
            target=target,
            monthly_target=monthly,
            achieved=achieved,
            achievement_rate=achievement_rate(achieved, target),
        )

    # ------------------------------------------------------------------
    # 매출 리포트
    # ------------------------------------------------------------------

    def get_sales_report(
        self,
        date_range: SalesReportRangeEnum = SalesReportRangeEnum.YEAR,
        region: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> SalesReportResponse:
        """매출 리포트: 요약, 월별 매출, 지역별 매출, 매출 상위 상품"""
        window = self.resolve_report_range(date_range, now)

        def build() -> SalesReportResponse:
            current = self.report_repo.sales_totals(window.start, window.end, region)
            previous = self.report_repo.sales_totals(
                window.previous_start, window.previous_end, region
            )
            average = float(current.revenue) / current.orders if current.orders else 0.0

            return SalesReportResponse(
                date_range=date_range,
                window=window,
                region=region,
                summary=SalesReportSummary(
                    total_revenue=float(current.revenue),
                    total_transactions=current.orders,
                    total_customers=current.customers,
                    average_transaction_value=average,
                    revenue_growth=growth_rate(current.revenue, previous.revenue),
                    customer_growth=growth_rate(current.customers, previous.customers),
                    total_products=self.report_repo.count_products(),
                ),
                monthly_sales=self._monthly_sales(window, region),
                regional_data=self._regional_data(window, region),
                top_products=[
                    TopProduct(
                        product_id=row.product_id,
                        name=row.name,
                        price=float(row.price),
                        status=row.status.value,
                        units=row.units,
                        revenue=float(row.revenue),
                    )
                    for row in self.report_repo.top_products(
                        window.start, window.end, TOP_PRODUCTS_LIMIT, region
                    )
                ],
            )

        return self._run_report(build)

    def _monthly_sales(
        self, window: ReportWindow, region: Optional[str]
    ) -> List[MonthlySalesPoint]:
        """일별 버킷을 달력 월 단위로 합산 (구간에 걸치는 모든 월 포함)"""
        months: "OrderedDict[Tuple[int, int], Dict[str, float]]" = OrderedDict()
        for point in self._sales_trends(window, region):
            bucket = months.setdefault(
                (point.date.year, point.date.month), {"revenue": 0.0, "orders": 0}
            )
            bucket["revenue"] += point.revenue
            bucket["orders"] += point.orders

        return [
            MonthlySalesPoint(
                month=f"{year:04d}-{month:02d}",
                label=calendar.month_abbr[month],
                revenue=bucket["revenue"],
                orders=int(bucket["orders"]),
                item_value=bucket["revenue"] / bucket["orders"] if bucket["orders"] else 0.0,
            )
            for (year, month), bucket in months.items()
        ]
