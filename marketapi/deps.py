from fastapi import Depends
from sqlalchemy.orm import Session

from marketapi.database.session import get_db
from marketapi.config import settings

# Services
from marketapi.services.activity_service import ActivityService
from marketapi.services.customer_service import CustomerService
from marketapi.services.dashboard_service import DashboardService
from marketapi.services.product_service import ProductService
from marketapi.services.settlement_service import SettlementService
from marketapi.services.transaction_service import TransactionService


def get_activity_service(db: Session = Depends(get_db)) -> ActivityService:
    return ActivityService(db=db, settings=settings)


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    return CustomerService(db=db)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    return ProductService(db=db, settings=settings)


def get_settlement_service(db: Session = Depends(get_db)) -> SettlementService:
    return SettlementService(db=db, settings=settings)


def get_transaction_service(db: Session = Depends(get_db)) -> TransactionService:
    return TransactionService(db=db, settings=settings)


def get_dashboard_service(db: Session = Depends(get_db)) -> DashboardService:
    return DashboardService(db=db, settings=settings)
