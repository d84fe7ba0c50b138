import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from marketapi.config import settings
from marketapi.core.exceptions import DependencyError, ValidationError
from marketapi.models.activity import ActivityTypeEnum
from marketapi.models.sale import Sale
from marketapi.schemas.activity import ActivityLogCreate
from marketapi.schemas.dashboard import SalesReportRangeEnum, TimeRangeEnum
from marketapi.services.dashboard_service import DashboardService
from marketapi.services.metrics_service import (
    monthly_revenue_target,
    weekly_revenue_target,
)


@pytest.fixture
def service(db):
    return DashboardService(db)


@pytest.fixture
def make_sale(db, make_customer, make_product, make_transaction):
    """집계 테스트용 매출 직접 생성 (거래/상품/구매자 포함)"""

    def _make(amount, created_at, region="Lagos", customer=None, product=None):
        customer = customer or make_customer()
        product = product or make_product(region=region)
        transaction = make_transaction(customer, product, amount, created_at=created_at)
        sale = Sale(
            transaction_id=transaction.id,
            product_id=product.id,
            customer_id=customer.id,
            amount=Decimal(str(amount)),
            quantity=1,
            profit=Decimal(str(amount)) * Decimal("0.2"),
            currency="NGN",
            payment_method="flutterwave",
            status="completed",
            region=region,
            product_type=product.type.value,
            created_at=created_at,
        )
        db.add(sale)
        db.commit()
        return sale

    return _make


def at(month, day, hour=10):
    return datetime(2024, month, day, hour, 0, tzinfo=timezone.utc)


class TestResolveWindow:
    def test_weekly_window_ends_at_now(self, service, now):
        window = service.resolve_window(TimeRangeEnum.WEEKLY, now=now)

        assert window.end == now
        assert window.start == now - timedelta(days=7)
        assert window.previous_end == window.start
        assert window.previous_start == now - timedelta(days=14)

    def test_monthly_window(self, service, now):
        window = service.resolve_window(TimeRangeEnum.MONTHLY, now=now)

        assert window.end - window.start == timedelta(days=30)

    def test_explicit_window_overrides_range(self, service, now):
        window = service.resolve_window(
            TimeRangeEnum.MONTHLY, start=at(6, 1, 0), end=at(6, 3, 0), now=now
        )

        assert window.start == at(6, 1, 0)
        assert window.previous_start == at(5, 30, 0)

    def test_naive_bounds_are_utc(self, service):
        window = service.resolve_window(start=datetime(2024, 6, 1), end=datetime(2024, 6, 2))

        assert window.start.tzinfo is not None

    def test_only_start_rejected(self, service):
        with pytest.raises(ValidationError):
            service.resolve_window(start=at(6, 1))

    def test_start_after_end_rejected(self, service):
        with pytest.raises(ValidationError):
            service.resolve_window(start=at(6, 2), end=at(6, 1))

    def test_empty_window_rejected(self, service):
        with pytest.raises(ValidationError):
            service.resolve_window(start=at(6, 1), end=at(6, 1))

    def test_too_long_window_rejected(self, service):
        with pytest.raises(ValidationError):
            service.resolve_window(
                start=datetime(2022, 1, 1, tzinfo=timezone.utc),
                end=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    @pytest.mark.parametrize(
        "date_range, start, end",
        [
            (SalesReportRangeEnum.TODAY, at(6, 15, 0), at(6, 16, 0)),
            (SalesReportRangeEnum.WEEK, at(6, 8, 12), at(6, 15, 12)),
            (SalesReportRangeEnum.MONTH, at(6, 1, 0), at(7, 1, 0)),
            (
                SalesReportRangeEnum.YEAR,
                at(1, 1, 0),
                datetime(2025, 1, 1, tzinfo=timezone.utc),
            ),
        ],
    )
    def test_report_ranges(self, service, now, date_range, start, end):
        window = service.resolve_report_range(date_range, now=now)

        assert window.start == start
        assert window.end == end


class TestDashboardOverview:
    def test_sales_trends_are_backfilled(self, service, make_sale, now):
        make_sale(1000, at(6, 10))
        make_sale(500, at(6, 14), region="Abuja")

        overview = service.get_dashboard_overview(TimeRangeEnum.WEEKLY, now=now)

        days = [point.date for point in overview.sales_trends]
        assert days[0] == date(2024, 6, 8)
        assert days[-1] == date(2024, 6, 15)
        assert len(days) == 8
        by_day = {point.date: point for point in overview.sales_trends}
        assert by_day[date(2024, 6, 10)].revenue == 1000
        assert by_day[date(2024, 6, 10)].orders == 1
        assert by_day[date(2024, 6, 11)].revenue == 0
        assert sum(point.revenue for point in overview.sales_trends) == 1500

    def test_window_is_half_open(self, service, make_sale, now):
        make_sale(700, now)
        make_sale(300, now - timedelta(days=7))

        overview = service.get_dashboard_overview(TimeRangeEnum.WEEKLY, now=now)

        assert sum(point.revenue for point in overview.sales_trends) == 300

    def test_regional_growth(self, service, make_sale, now):
        make_sale(1000, at(6, 10), region="Lagos")
        make_sale(500, at(6, 5), region="Lagos")
        make_sale(800, at(6, 12), region="Abuja")

        overview = service.get_dashboard_overview(TimeRangeEnum.WEEKLY, now=now)

        regions = {row.region: row for row in overview.regional_data}
        assert [row.region for row in overview.regional_data] == ["Lagos", "Abuja"]
        assert regions["Lagos"].previous_revenue == 500
        assert regions["Lagos"].growth == pytest.approx(100.0)
        # 직전 구간 매출이 없으면 성장률 0
        assert regions["Abuja"].growth == 0

    def test_region_filter(self, service, make_sale, now):
        make_sale(1000, at(6, 10), region="Lagos")
        make_sale(800, at(6, 12), region="Abuja")

        overview = service.get_dashboard_overview(TimeRangeEnum.WEEKLY, region="Abuja", now=now)

        assert sum(point.revenue for point in overview.sales_trends) == 800
        assert [row.region for row in overview.regional_data] == ["Abuja"]

    def test_customer_growth(self, service, make_customer, now):
        make_customer(created_at=at(6, 12))
        make_customer(created_at=at(6, 13))
        make_customer(created_at=at(6, 3))

        overview = service.get_dashboard_overview(TimeRangeEnum.WEEKLY, now=now)

        growth = overview.customer_growth
        assert growth.total_new == 2
        assert growth.previous_total_new == 1
        assert growth.growth == pytest.approx(100.0)
        daily = {point.date: point.new_customers for point in growth.daily}
        assert daily[date(2024, 6, 12)] == 1
        assert daily[date(2024, 6, 9)] == 0

    def test_recent_activities_within_retention(self, db, service, now):
        service.activity_service.log_activity(
            ActivityLogCreate(user_id="user-1", type=ActivityTypeEnum.LOGIN),
            created_at=now - timedelta(days=1),
        )
        service.activity_service.log_activity(
            ActivityLogCreate(user_id="user-1", type=ActivityTypeEnum.LOGIN),
            created_at=now - timedelta(days=45),
        )

        overview = service.get_dashboard_overview(TimeRangeEnum.WEEKLY, now=now)

        assert len(overview.recent_activities) == 1

    def test_empty_store(self, service, now):
        overview = service.get_dashboard_overview(TimeRangeEnum.MONTHLY, now=now)

        assert all(point.revenue == 0 for point in overview.sales_trends)
        assert overview.regional_data == []
        assert overview.popular_products == []
        assert overview.customer_growth.growth == 0

    def test_store_failure_becomes_dependency_error(self, service, now):
        with patch.object(
            service.report_repo,
            "daily_sales",
            side_effect=OperationalError("SELECT ...", {}, Exception("canceling statement due to statement timeout")),
        ):
            with pytest.raises(DependencyError):
                service.get_dashboard_overview(TimeRangeEnum.WEEKLY, now=now)


class TestDashboardMetrics:
    def test_weekly_metrics(self, service, make_sale, make_product, now):
        make_sale(1000, at(6, 10))
        make_sale(500, at(6, 14))
        make_sale(750, at(6, 4))
        make_product()

        metrics = service.get_dashboard_metrics(TimeRangeEnum.WEEKLY, now=now)

        assert metrics.revenue.current == 1500
        assert metrics.revenue.previous == 750
        assert metrics.revenue.growth == pytest.approx(100.0)
        assert metrics.transactions.current == 2
        assert metrics.transactions.previous == 1
        assert metrics.products.sold_in_window == 2
        assert metrics.products.total_products == 4

        target = weekly_revenue_target(
            5, settings.REVENUE_TARGET_BASE, settings.REVENUE_TARGET_MONTHLY_GROWTH
        )
        assert metrics.sales_target.target == pytest.approx(target)
        assert metrics.sales_target.achievement_rate == pytest.approx(1500 / target * 100)

    def test_monthly_window_uses_monthly_target(self, service, now):
        metrics = service.get_dashboard_metrics(TimeRangeEnum.MONTHLY, now=now)

        assert metrics.sales_target.target == pytest.approx(
            monthly_revenue_target(
                5, settings.REVENUE_TARGET_BASE, settings.REVENUE_TARGET_MONTHLY_GROWTH
            )
        )
        assert metrics.sales_target.achievement_rate == 0

    def test_no_previous_data_means_zero_growth(self, service, make_sale, now):
        make_sale(1000, at(6, 10))

        metrics = service.get_dashboard_metrics(TimeRangeEnum.WEEKLY, now=now)

        assert metrics.revenue.growth == 0
        assert metrics.transactions.growth == 0


class TestSalesReport:
    def test_year_report(self, service, make_sale, make_customer, now):
        buyer = make_customer()
        make_sale(1000, at(2, 10), customer=buyer)
        make_sale(3000, at(6, 1), customer=buyer, region="Abuja")
        make_sale(500, datetime(2023, 3, 1, tzinfo=timezone.utc))

        report = service.get_sales_report(SalesReportRangeEnum.YEAR, now=now)

        assert report.summary.total_revenue == 4000
        assert report.summary.total_transactions == 2
        assert report.summary.total_customers == 1
        assert report.summary.average_transaction_value == 2000
        assert report.summary.revenue_growth == pytest.approx(700.0)
        assert [point.label for point in report.monthly_sales] == [
            "Jan", "Feb", "Mar", "Apr", "May", "Jun",
            "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
        ]
        months = {point.month: point for point in report.monthly_sales}
        assert months["2024-02"].revenue == 1000
        assert months["2024-06"].item_value == 3000
        assert months["2024-07"].orders == 0
        assert report.top_products[0].revenue == 3000

    def test_month_report(self, service, make_sale, now):
        make_sale(1200, at(6, 2))
        make_sale(300, at(5, 30))

        report = service.get_sales_report(SalesReportRangeEnum.MONTH, now=now)

        assert [point.month for point in report.monthly_sales] == ["2024-06"]
        assert report.monthly_sales[0].label == "Jun"
        assert report.summary.total_revenue == 1200

    def test_today_report_region_filter(self, service, make_sale, now):
        make_sale(100, at(6, 15, 1), region="Lagos")
        make_sale(200, at(6, 15, 2), region="Abuja")

        report = service.get_sales_report(SalesReportRangeEnum.TODAY, region="Lagos", now=now)

        assert report.summary.total_revenue == 100
        assert [row.region for row in report.regional_data] == ["Lagos"]

    def test_top_products_ordered_by_revenue(self, service, make_sale, make_product, now):
        cheap = make_product(username="cheap")
        pricey = make_product(username="pricey")
        make_sale(100, at(6, 10), product=cheap)
        make_sale(150, at(6, 11), product=cheap)
        make_sale(900, at(6, 12), product=pricey)

        report = service.get_sales_report(SalesReportRangeEnum.MONTH, now=now)

        assert [row.name for row in report.top_products] == ["pricey", "cheap"]
        assert report.top_products[1].units == 2
