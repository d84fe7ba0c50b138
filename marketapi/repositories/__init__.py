# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .product_repository import ProductRepository
from .customer_repository import CustomerRepository
from .transaction_repository import TransactionRepository
from .sale_repository import SaleRepository
from .activity_repository import ActivityRepository
from .report_repository import ReportRepository

__all__ = [
    "BaseRepository",
    "ProductRepository",
    "CustomerRepository",
    "TransactionRepository",
    "SaleRepository",
    "ActivityRepository",
    "ReportRepository",
]
