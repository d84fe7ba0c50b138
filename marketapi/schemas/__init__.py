from .auth import BaseResponse, Error, ErrorCode
from .customer import CustomerResponse, CustomerSegmentResponse
from .product import ProductResponse, ProductMetricsResponse
from .sale import SaleResponse
from .transaction import TransactionMeta, TransactionResponse
