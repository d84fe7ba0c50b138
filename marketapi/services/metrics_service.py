"""
지표 계산 엔진

구매자 등급, 상품 인기 점수, 전환율, 성장률, 매출 목표, 추세 분류를 계산하는 순수 함수 모음입니다.
DB 에 접근하지 않으며 예외를 던지지 않습니다 (0 으로 나누는 경우는 정의된 기본값으로 처리).
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence, Union

from marketapi.models.customer import CustomerSegmentEnum
from marketapi.schemas.dashboard import (
    PerformanceLevelEnum,
    PerformanceTrend,
    TrendDirectionEnum,
)
from marketapi.utils.date_utils import elapsed_days

Number = Union[int, float, Decimal]

# 높은 등급부터 평가, 하한 포함
SEGMENT_THRESHOLDS = (
    (1_000_000, CustomerSegmentEnum.PLATINUM),
    (500_000, CustomerSegmentEnum.GOLD),
    (100_000, CustomerSegmentEnum.SILVER),
)

SALES_WEIGHT = 0.4
VIEWS_WEIGHT = 0.3
RECENCY_WEIGHT = 0.3
VIEWS_SCALE = 100
NEVER_SOLD_DAYS = 30

SEASONAL_FACTORS = (1.0, 1.0, 1.1, 1.1, 1.15, 1.2, 1.1, 1.1, 1.2, 1.3, 1.5, 1.5)
WEEKS_PER_MONTH = 4


def segment_for_spend(total_spent: Number) -> CustomerSegmentEnum:
    """
    누적 구매 금액으로 등급 결정

    Examples:
        >>> segment_for_spend(1_000_000)
        CustomerSegmentEnum.PLATINUM
        >>> segment_for_spend(999_999)
        CustomerSegmentEnum.GOLD
    """
    for threshold, segment in SEGMENT_THRESHOLDS:
        if total_spent >= threshold:
            return segment
    return CustomerSegmentEnum.BRONZE


def popularity_score(
    sales_count: int,
    unique_views: int,
    last_sale_at: Optional[datetime],
    now: Optional[datetime] = None,
) -> float:
    """
    인기 점수 = 판매 점수 + 조회 점수 + 최근성 점수

    - 판매 점수: sales_count * 0.4
    - 조회 점수: (unique_views / 100) * 0.3
    - 최근성 점수: (1 / (마지막 판매 후 경과일 + 1)) * 0.3, 판매 이력이 없으면 경과일 30
    """
    days = elapsed_days(last_sale_at, now)
    if days is None:
        days = NEVER_SOLD_DAYS

    sales_score = sales_count * SALES_WEIGHT
    views_score = (unique_views / VIEWS_SCALE) * VIEWS_WEIGHT
    recency_score = (1 / (days + 1)) * RECENCY_WEIGHT
    return sales_score + views_score + recency_score


def conversion_rate(sales_count: int, unique_views: int) -> float:
    """전환율 (%) - 순 조회수가 0 이면 0"""
    if unique_views <= 0:
        return 0.0
    return sales_count * 100 / unique_views


def average_sale_price(total_revenue: Number, sales_count: int, price: Number) -> float:
    """평균 판매가 - 판매 이력이 없으면 등록 가격"""
    if sales_count <= 0:
        return float(price)
    return float(total_revenue) / sales_count


def growth_rate(current: Number, previous: Number) -> float:
    """직전 구간 대비 성장률 (%) - 직전 값이 0 이면 0"""
    previous = float(previous)
    if previous == 0:
        return 0.0
    return (float(current) - previous) * 100 / previous


def monthly_revenue_target(month_index: int, base: float, monthly_growth: float) -> float:
    """
    계절성 가중 월간 매출 목표

    base * (1 + monthly_growth) ** month_index * SEASONAL_FACTORS[month_index]
    month_index 는 0 부터 시작하는 달력 월 (1월 = 0)
    """
    month_index = month_index % 12
    return base * (1 + monthly_growth) ** month_index * SEASONAL_FACTORS[month_index]


def weekly_revenue_target(month_index: int, base: float, monthly_growth: float) -> float:
    return monthly_revenue_target(month_index, base, monthly_growth) / WEEKS_PER_MONTH


def achievement_rate(achieved: Number, target: Number) -> float:
    target = float(target)
    if target <= 0:
        return 0.0
    return float(achieved) * 100 / target


def classify_performance(values: Sequence[Number]) -> PerformanceTrend:
    """
    시계열 추세 분류

    - level: 마지막 값과 평균 비교 (above_average / below_average / average)
    - direction: 첫 값과 마지막 값 비교 (increasing / decreasing / stable)
    빈 시계열은 average / stable
    """
    if not values:
        return PerformanceTrend()

    series = [float(v) for v in values]
    mean = sum(series) / len(series)
    latest = series[-1]

    if latest > mean:
        level = PerformanceLevelEnum.ABOVE_AVERAGE
    elif latest < mean:
        level = PerformanceLevelEnum.BELOW_AVERAGE
    else:
        level = PerformanceLevelEnum.AVERAGE

    if latest > series[0]:
        direction = TrendDirectionEnum.INCREASING
    elif latest < series[0]:
        direction = TrendDirectionEnum.DECREASING
    else:
        direction = TrendDirectionEnum.STABLE

    return PerformanceTrend(level=level, direction=direction)


def default_profit(amount: Decimal, margin: float) -> Decimal:
    """명시적 수익이 없을 때의 기본 수익 (amount * margin)"""
    return (amount * Decimal(str(margin))).quantize(Decimal("0.01"))
