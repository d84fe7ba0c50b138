from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SaleResponse(BaseModel):
    """매출 기록"""

    id: int
    transaction_id: int
    product_id: int
    customer_id: int
    amount: float
    quantity: int
    profit: float
    currency: str
    payment_method: Optional[str] = None
    status: str
    region: Optional[str] = None
    product_type: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
