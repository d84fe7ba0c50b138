from pydantic import BaseModel, Field
from typing import List, Optional
import datetime as dt
from enum import Enum

from marketapi.schemas.activity import ActivityLogResponse
from marketapi.schemas.product import PopularProduct


class TimeRangeEnum(str, Enum):
    WEEKLY = "weekly"  # 최근 7일
    MONTHLY = "monthly"  # 최근 30일


class SalesReportRangeEnum(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class PerformanceLevelEnum(str, Enum):
    ABOVE_AVERAGE = "above_average"
    BELOW_AVERAGE = "below_average"
    AVERAGE = "average"


class TrendDirectionEnum(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class ReportWindow(BaseModel):
    """집계 구간 [start, end) 및 비교 대상 직전 구간"""

    start: dt.datetime
    end: dt.datetime
    previous_start: dt.datetime
    previous_end: dt.datetime


class SalesTrendPoint(BaseModel):
    """일별 매출 버킷"""

    date: dt.date
    revenue: float = 0
    profit: float = 0
    orders: int = 0


class RegionalData(BaseModel):
    """지역별 매출"""

    region: str
    revenue: float
    orders: int
    previous_revenue: float = 0
    growth: float = Field(0, description="직전 구간 대비 매출 성장률 (%)")


class CustomerGrowthPoint(BaseModel):
    date: dt.date
    new_customers: int = 0


class CustomerGrowth(BaseModel):
    """신규 구매자 추이"""

    daily: List[CustomerGrowthPoint]
    total_new: int
    previous_total_new: int
    growth: float


class DashboardOverviewResponse(BaseModel):
    """대시보드 개요"""

    window: ReportWindow
    region: Optional[str] = None
    sales_trends: List[SalesTrendPoint]
    regional_data: List[RegionalData]
    popular_products: List[PopularProduct]
    customer_growth: CustomerGrowth
    recent_activities: List[ActivityLogResponse]


class PerformanceTrend(BaseModel):
    level: PerformanceLevelEnum = PerformanceLevelEnum.AVERAGE
    direction: TrendDirectionEnum = TrendDirectionEnum.STABLE


class SalesTarget(BaseModel):
    """계절성 가중 매출 목표"""

    target: float = Field(..., description="구간 목표 (주간 = 월간 / 4)")
    monthly_target: float
    achieved: float
    achievement_rate: float = Field(..., description="목표 달성률 (%)")


class MetricSummary(BaseModel):
    """현재 구간 값과 직전 구간 대비 성장률"""

    current: float
    previous: float
    growth: float


class RevenueMetrics(MetricSummary):
    trend: PerformanceTrend


class ProductMetricsSummary(BaseModel):
    total_products: int
    available_products: int
    sold_in_window: int
    previous_sold: int
    growth: float


class DashboardMetricsResponse(BaseModel):
    """대시보드 지표"""

    window: ReportWindow
    sales_target: SalesTarget
    revenue: RevenueMetrics
    customers: MetricSummary
    transactions: MetricSummary
    products: ProductMetricsSummary


class SalesReportSummary(BaseModel):
    total_revenue: float
    total_transactions: int
    total_customers: int
    average_transaction_value: float
    revenue_growth: float
    customer_growth: float
    total_products: int


class MonthlySalesPoint(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    label: str = Field(..., description="Jan..Dec")
    revenue: float
    orders: int
    item_value: float = Field(..., description="평균 판매 금액")


class TopProduct(BaseModel):
    product_id: int
    name: Optional[str] = None
    price: float
    status: str
    units: int
    revenue: float


class SalesReportResponse(BaseModel):
    """매출 리포트"""

    date_range: SalesReportRangeEnum
    window: ReportWindow
    region: Optional[str] = None
    summary: SalesReportSummary
    monthly_sales: List[MonthlySalesPoint]
    regional_data: List[RegionalData]
    top_products: List[TopProduct]
