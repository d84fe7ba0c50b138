import pytest

from marketapi.core.exceptions import DependencyError
from marketapi.deps import get_settlement_service
from marketapi.models.transaction import PaymentStatusEnum, TransactionStatusEnum

API = "/api/v1"


class FakeSettlementService:
    """정산 도중 저장소 장애를 흉내내는 서비스"""

    def settle_transaction(self, transaction_id):
        raise DependencyError(
            f"Settlement of transaction {transaction_id} failed and was rolled back",
            {"transaction_id": transaction_id},
        )


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "ok"

    def test_root(self, client):
        assert client.get("/").status_code == 200


class TestAuth:
    def test_missing_token(self, client):
        response = client.get(f"{API}/products/popular")

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "AUTH_001"

    def test_invalid_token(self, client):
        response = client.get(
            f"{API}/products/popular", headers={"Authorization": "Bearer not-a-jwt"}
        )

        assert response.status_code == 401

    def test_expired_token(self, client, expired_headers):
        response = client.get(f"{API}/products/popular", headers=expired_headers)

        assert response.status_code == 401

    @pytest.mark.parametrize(
        "method, path",
        [
            ("get", "/customers/segments"),
            ("get", "/transactions/stats"),
            ("post", "/admin/settlement/transactions/1"),
            ("get", "/dashboard/overview"),
            ("get", "/dashboard/metrics"),
            ("get", "/dashboard/sales-report"),
        ],
    )
    def test_admin_only(self, client, user_headers, method, path):
        response = getattr(client, method)(f"{API}{path}", headers=user_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "AUTH_002"


class TestProductRoutes:
    def test_record_view(self, client, user_headers, make_product):
        product = make_product()

        first = client.post(f"{API}/products/{product.id}/views", headers=user_headers)
        second = client.post(f"{API}/products/{product.id}/views", headers=user_headers)

        assert first.status_code == 200
        assert first.json()["data"]["view"]["is_unique"] is True
        view = second.json()["data"]["view"]
        assert view["is_unique"] is False
        assert view["total_views"] == 2
        assert view["unique_views"] == 1

    def test_unknown_product(self, client, user_headers):
        response = client.get(f"{API}/products/999/metrics", headers=user_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND_001"

    def test_popular_limit_validation(self, client, user_headers):
        response = client.get(f"{API}/products/popular?limit=500", headers=user_headers)

        assert response.status_code == 422

    def test_popular(self, client, user_headers):
        response = client.get(f"{API}/products/popular", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"] == {"products": [], "total_count": 0}


class TestCustomerRoutes:
    def test_get_segment(self, client, user_headers, make_customer):
        customer = make_customer(total_spent=150000)

        response = client.get(f"{API}/customers/{customer.id}/segment", headers=user_headers)

        assert response.status_code == 200
        assert response.json()["data"]["segment"]["customer_id"] == customer.id

    def test_override_segment(self, client, admin_headers, make_customer):
        customer = make_customer()

        response = client.patch(
            f"{API}/customers/{customer.id}/segment",
            json={"segment": "platinum", "reason": "VIP"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        segment = response.json()["data"]["segment"]
        assert segment["segment"] == "platinum"
        assert segment["overridden"] is True

    def test_override_invalid_segment(self, client, admin_headers, make_customer):
        customer = make_customer()

        response = client.patch(
            f"{API}/customers/{customer.id}/segment",
            json={"segment": "diamond"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_distribution(self, client, admin_headers, make_customer):
        make_customer()
        make_customer()

        response = client.get(f"{API}/customers/segments", headers=admin_headers)

        data = response.json()["data"]
        assert data["total_customers"] == 2
        assert data["counts"]["bronze"] == 2


class TestTransactionAndSettlementRoutes:
    def test_create_and_complete_transaction(
        self, client, user_headers, admin_headers, make_customer, make_product
    ):
        customer = make_customer()
        product = make_product(price=600000)

        created = client.post(
            f"{API}/transactions",
            json={
                "customer_id": customer.id,
                "product_id": product.id,
                "amount": 600000,
                "meta": {"tx_ref": "flw-001"},
            },
            headers=user_headers,
        )
        assert created.status_code == 201
        transaction_id = created.json()["data"]["transaction"]["id"]

        completed = client.patch(
            f"{API}/transactions/{transaction_id}/status",
            json={"status": "completed", "payment_status": "paid"},
            headers=admin_headers,
        )

        assert completed.status_code == 200
        data = completed.json()["data"]
        assert data["settled"] is True
        assert data["transaction"]["settled_at"] is not None

        segment = client.get(f"{API}/customers/{customer.id}/segment", headers=user_headers)
        assert segment.json()["data"]["segment"]["segment"] == "gold"

    def test_unknown_meta_key_rejected(self, client, user_headers, make_customer, make_product):
        response = client.post(
            f"{API}/transactions",
            json={
                "customer_id": make_customer().id,
                "product_id": make_product().id,
                "amount": 100,
                "meta": {"coupon": "FREE"},
            },
            headers=user_headers,
        )

        assert response.status_code == 422

    def test_settle_endpoint_is_idempotent(
        self, client, admin_headers, make_customer, make_product, make_transaction
    ):
        transaction = make_transaction(make_customer(), make_product(), 2500)

        first = client.post(
            f"{API}/admin/settlement/transactions/{transaction.id}", headers=admin_headers
        )
        second = client.post(
            f"{API}/admin/settlement/transactions/{transaction.id}", headers=admin_headers
        )

        assert first.status_code == 200
        assert first.json()["data"]["sale"]["id"] == second.json()["data"]["sale"]["id"]

    def test_settle_unpaid_transaction(
        self, client, admin_headers, make_customer, make_product, make_transaction
    ):
        transaction = make_transaction(
            make_customer(),
            make_product(),
            2500,
            status=TransactionStatusEnum.PENDING,
            payment_status=PaymentStatusEnum.UNPAID,
        )

        response = client.post(
            f"{API}/admin/settlement/transactions/{transaction.id}", headers=admin_headers
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_store_failure_returns_retryable_503(self, client, admin_headers):
        client.app.dependency_overrides[get_settlement_service] = lambda: FakeSettlementService()

        response = client.post(f"{API}/admin/settlement/transactions/7", headers=admin_headers)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "5"
        error = response.json()["error"]
        assert error["code"] == "DEPENDENCY_001"
        assert error["details"]["retryable"] is True

    def test_transaction_stats(self, client, admin_headers, make_customer, make_product, make_transaction):
        make_transaction(make_customer(), make_product(), 1000)

        response = client.get(f"{API}/transactions/stats", headers=admin_headers)

        data = response.json()["data"]
        assert data["total_count"] == 1
        assert data["status_counts"]["completed"] == 1


class TestDashboardRoutes:
    def test_overview_with_explicit_window(self, client, admin_headers):
        response = client.get(
            f"{API}/dashboard/overview",
            params={"start": "2024-06-01T00:00:00Z", "end": "2024-06-03T00:00:00Z"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert [p["date"] for p in data["sales_trends"]] == ["2024-06-01", "2024-06-02"]
        assert data["regional_data"] == []

    def test_overview_requires_both_bounds(self, client, admin_headers):
        response = client.get(
            f"{API}/dashboard/overview",
            params={"start": "2024-06-01T00:00:00Z"},
            headers=admin_headers,
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_001"

    def test_invalid_time_range(self, client, admin_headers):
        response = client.get(
            f"{API}/dashboard/overview", params={"timeRange": "daily"}, headers=admin_headers
        )

        assert response.status_code == 422

    def test_metrics(self, client, admin_headers):
        response = client.get(
            f"{API}/dashboard/metrics", params={"timeRange": "monthly"}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["revenue"]["growth"] == 0
        assert data["sales_target"]["achievement_rate"] == 0

    def test_sales_report(self, client, admin_headers):
        response = client.get(
            f"{API}/dashboard/sales-report", params={"dateRange": "month"}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["date_range"] == "month"
        assert len(data["monthly_sales"]) == 1
