import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

from datetime import datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from marketapi.core.security import create_access_token  # noqa: E402
from marketapi.database.session import get_db  # noqa: E402
from marketapi.models.base import Base  # noqa: E402
from marketapi.models.customer import Customer  # noqa: E402
from marketapi.models.product import PlatformEnum, Product  # noqa: E402
from marketapi.models.transaction import (  # noqa: E402
    PaymentStatusEnum,
    Transaction,
    TransactionStatusEnum,
)
from marketapi.models import activity, sale  # noqa: E402,F401


@pytest.fixture
def engine():
    """테스트마다 새로운 in-memory SQLite 엔진"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def now():
    return datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_customer(db):
    counter = {"n": 0}

    def _make(total_spent=0, created_at=None, **kwargs):
        counter["n"] += 1
        n = counter["n"]
        customer = Customer(
            user_id=kwargs.pop("user_id", f"user-{n}"),
            name=kwargs.pop("name", f"Customer {n}"),
            email=kwargs.pop("email", f"customer{n}@example.com"),
            total_spent=Decimal(str(total_spent)),
            **kwargs,
        )
        if created_at is not None:
            customer.created_at = created_at
        db.add(customer)
        db.commit()
        return customer

    return _make


@pytest.fixture
def make_product(db):
    def _make(price=1000, region="Lagos", **kwargs):
        product = Product(
            type=kwargs.pop("type", PlatformEnum.INSTAGRAM),
            username=kwargs.pop("username", "market_account"),
            price=Decimal(str(price)),
            region=region,
            **kwargs,
        )
        db.add(product)
        db.commit()
        return product

    return _make


@pytest.fixture
def make_transaction(db):
    def _make(
        customer,
        product,
        amount,
        status=TransactionStatusEnum.COMPLETED,
        payment_status=PaymentStatusEnum.PAID,
        meta=None,
        created_at=None,
    ):
        transaction = Transaction(
            customer_id=customer.id,
            product_id=product.id,
            amount=Decimal(str(amount)),
            currency="NGN",
            payment_method="flutterwave",
            status=status,
            payment_status=payment_status,
            meta=meta or {},
        )
        if created_at is not None:
            transaction.created_at = created_at
        db.add(transaction)
        db.commit()
        return transaction

    return _make


@pytest.fixture
def client(db):
    """get_db 를 테스트 세션으로 교체한 TestClient"""
    from marketapi.main import create_app

    app = create_app()

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def auth_header(user_id="user-1", role="user", expires=timedelta(minutes=5)):
    token = create_access_token({"user_id": user_id, "role": role}, expires)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers():
    return auth_header()


@pytest.fixture
def admin_headers():
    return auth_header(user_id="admin-1", role="admin")


@pytest.fixture
def expired_headers():
    return auth_header(expires=timedelta(minutes=-5))
