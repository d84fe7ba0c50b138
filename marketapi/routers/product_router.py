"""
상품 지표 API 라우터

- POST /products/{product_id}/views: 상품 조회 기록 (순 조회수 24시간 중복 제거)
- GET /products/popular: 인기 상품 목록
- GET /products/{product_id}/metrics: 상품 파생 지표
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query
from fastapi.concurrency import run_in_threadpool

from marketapi.core.security import CurrentUser, get_current_user
from marketapi.deps import get_product_service
from marketapi.schemas.auth import BaseResponse
from marketapi.services.product_service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])


@router.get("/popular", response_model=BaseResponse)
async def get_popular_products(
    limit: Optional[int] = Query(None, ge=1, le=100),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Any:
    """판매 이력이 있는 상품을 인기 점수 순으로 조회"""
    result = await run_in_threadpool(service.get_popular_products, limit)
    return BaseResponse(success=True, data=result.model_dump(mode="json"))


@router.post("/{product_id}/views", response_model=BaseResponse)
async def record_product_view(
    product_id: int = Path(..., gt=0),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Any:
    """현재 사용자의 상품 조회 기록"""
    result = await run_in_threadpool(
        service.record_view, product_id, current_user.user_id
    )
    return BaseResponse(success=True, data={"view": result.model_dump(mode="json")})


@router.get("/{product_id}/metrics", response_model=BaseResponse)
async def get_product_metrics(
    product_id: int = Path(..., gt=0),
    current_user: CurrentUser = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Any:
    """조회수, 판매 건수, 평균 판매가, 전환율, 인기 점수"""
    metrics = await run_in_threadpool(service.get_product_metrics, product_id)
    return BaseResponse(success=True, data={"metrics": metrics.model_dump(mode="json")})
