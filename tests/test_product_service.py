import pytest
from datetime import timedelta
from decimal import Decimal

from marketapi.core.exceptions import NotFoundError, ValidationError
from marketapi.models.activity import ActivityLog, ActivityTypeEnum
from marketapi.models.product import ProductStatusEnum
from marketapi.services.product_service import ProductService


@pytest.fixture
def service(db):
    return ProductService(db)


def _sell(db, service, product, amount, sold_at):
    service.apply_sale(product.id, Decimal(str(amount)), sold_at)
    db.commit()


class TestRecordView:
    def test_same_viewer_within_window_counts_once(self, db, service, make_product, now):
        """1시간 간격으로 같은 사용자가 두 번 조회 → 전체 2, 순 조회 1"""
        product = make_product()

        first = service.record_view(product.id, "viewer-1", now=now)
        second = service.record_view(product.id, "viewer-1", now=now + timedelta(hours=1))

        assert first.is_unique is True
        assert second.is_unique is False
        assert second.total_views == 2
        assert second.unique_views == 1

    def test_viewer_counted_again_after_window(self, service, make_product, now):
        product = make_product()

        service.record_view(product.id, "viewer-1", now=now)
        result = service.record_view(product.id, "viewer-1", now=now + timedelta(hours=25))

        assert result.is_unique is True
        assert result.total_views == 2
        assert result.unique_views == 2

    def test_different_viewers_are_unique(self, service, make_product, now):
        product = make_product()

        service.record_view(product.id, "viewer-1", now=now)
        result = service.record_view(product.id, "viewer-2", now=now)

        assert result.unique_views == 2

    def test_view_is_logged_as_activity(self, db, service, make_product, now):
        product = make_product()

        service.record_view(product.id, "viewer-1", now=now)

        activity = db.query(ActivityLog).one()
        assert activity.type == ActivityTypeEnum.VIEW
        assert activity.user_id == "viewer-1"
        assert activity.product_id == product.id

    def test_blank_viewer_rejected(self, service, make_product):
        product = make_product()

        with pytest.raises(ValidationError):
            service.record_view(product.id, "   ")

    def test_unknown_product(self, service):
        with pytest.raises(NotFoundError):
            service.record_view(404, "viewer-1")


class TestApplySale:
    def test_apply_sale_updates_counters_and_score(self, db, service, make_product, now):
        product = make_product(price=1500)
        for viewer in ("a", "b", "c", "d"):
            service.record_view(product.id, viewer, now=now - timedelta(hours=2))

        score = service.apply_sale(product.id, Decimal("2000"), now)
        db.commit()

        # 1*0.4 + (4/100)*0.3 + 1*0.3
        assert score == pytest.approx(0.4 + 0.012 + 0.3)
        refreshed = service.get_product(product.id)
        assert refreshed.status == ProductStatusEnum.SOLD
        assert refreshed.sales_count == 1
        assert refreshed.total_revenue == 2000
        assert refreshed.popularity_score == pytest.approx(score)

    def test_apply_sale_unknown_product(self, service, now):
        with pytest.raises(NotFoundError):
            service.apply_sale(999, Decimal("10"), now)


class TestProductMetrics:
    def test_metrics(self, db, service, make_product, now):
        product = make_product(price=1500)
        for viewer in ("a", "b", "c", "d"):
            service.record_view(product.id, viewer, now=now - timedelta(hours=2))
        _sell(db, service, product, 2000, now)

        metrics = service.get_product_metrics(product.id)

        assert metrics.total_views == 4
        assert metrics.unique_views == 4
        assert metrics.sales_count == 1
        assert metrics.average_sale_price == 2000.0
        assert metrics.conversion_rate == pytest.approx(25.0)

    def test_metrics_without_sales(self, service, make_product):
        product = make_product(price=1500)

        metrics = service.get_product_metrics(product.id)

        assert metrics.average_sale_price == 1500.0
        assert metrics.conversion_rate == 0

    def test_metrics_unknown_product(self, service):
        with pytest.raises(NotFoundError):
            service.get_product_metrics(12345)


class TestPopularProducts:
    def test_only_sold_products_ranked_by_score(self, db, service, make_product, now):
        never_sold = make_product(username="never_sold")
        single_sale = make_product(username="single_sale")
        repeat_sale = make_product(username="repeat_sale")
        _sell(db, service, single_sale, 1000, now - timedelta(days=1))
        _sell(db, service, repeat_sale, 1000, now - timedelta(days=1))
        _sell(db, service, repeat_sale, 1000, now)

        result = service.get_popular_products(limit=5)

        ids = [product.id for product in result.products]
        assert ids == [repeat_sale.id, single_sale.id]
        assert never_sold.id not in ids
        assert result.total_count == 2

    def test_deleted_products_excluded(self, db, service, make_product, now):
        product = make_product()
        _sell(db, service, product, 1000, now)
        model = service.product_repo.get_model(product.id)
        model.status = ProductStatusEnum.DELETED
        db.commit()

        assert service.get_popular_products().products == []

    def test_limit_is_respected(self, db, service, make_product, now):
        for i in range(3):
            _sell(db, service, make_product(username=f"acct{i}"), 1000, now)

        assert len(service.get_popular_products(limit=2).products) == 2

    @pytest.mark.parametrize("limit", [-1, 101])
    def test_invalid_limit(self, service, limit):
        with pytest.raises(ValidationError):
            service.get_popular_products(limit=limit)
