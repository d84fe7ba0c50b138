from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from marketapi.models.product import PlatformEnum, ProductStatusEnum


class ProductResponse(BaseModel):
    """상품 정보 (자격 증명 필드 제외)"""

    id: int
    seller_id: Optional[str] = None
    type: PlatformEnum
    username: Optional[str] = None
    status: ProductStatusEnum
    price: float
    region: Optional[str] = None
    followers: int = 0
    engagement: float = 0
    age: int = 0

    total_views: int = 0
    unique_views: int = 0
    sales_count: int = 0
    total_revenue: float = 0
    last_sale_at: Optional[datetime] = None
    popularity_score: float = 0
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProductMetricsResponse(BaseModel):
    """상품 파생 지표"""

    product_id: int = Field(..., description="상품 ID")
    total_views: int = Field(..., description="전체 조회수")
    unique_views: int = Field(..., description="순 조회수 (24시간 내 중복 제외)")
    sales_count: int = Field(..., description="판매 건수")
    total_revenue: float = Field(..., description="누적 매출")
    average_sale_price: float = Field(..., description="평균 판매가")
    conversion_rate: float = Field(..., description="전환율 (%)")
    popularity_score: float = Field(..., description="인기 점수")
    last_sale_at: Optional[datetime] = Field(None, description="마지막 판매 시각")


class ProductViewResult(BaseModel):
    """조회 기록 결과"""

    product_id: int
    is_unique: bool = Field(..., description="24시간 내 첫 조회 여부")
    total_views: int
    unique_views: int


class PopularProduct(BaseModel):
    """인기 상품 항목"""

    id: int
    type: PlatformEnum
    username: Optional[str] = None
    status: ProductStatusEnum
    price: float
    region: Optional[str] = None
    sales_count: int
    total_revenue: float
    unique_views: int
    popularity_score: float
    conversion_rate: float = 0

    class Config:
        from_attributes = True


class PopularProductsResponse(BaseModel):
    products: List[PopularProduct]
    total_count: int
