"""
구매자 등급 API 라우터

- GET /customers/segments: 등급별 구매자 수 (관리자)
- GET /customers/{customer_id}/segment: 구매자 등급 조회
- PATCH /customers/{customer_id}/segment: 등급 수동 지정 (관리자)
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Path
from fastapi.concurrency import run_in_threadpool

from marketapi.core.security import CurrentUser, get_current_user, require_admin
from marketapi.deps import get_customer_service
from marketapi.schemas.auth import BaseResponse
from marketapi.schemas.customer import SegmentOverrideRequest
from marketapi.services.customer_service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/segments", response_model=BaseResponse)
async def get_segment_distribution(
    admin: CurrentUser = Depends(require_admin),
    service: CustomerService = Depends(get_customer_service),
) -> Any:
    distribution = await run_in_threadpool(service.get_segment_distribution)
    return BaseResponse(success=True, data=distribution.model_dump(mode="json"))


@router.get("/{customer_id}/segment", response_model=BaseResponse)
async def get_customer_segment(
    customer_id: int = Path(..., gt=0),
    current_user: CurrentUser = Depends(get_current_user),
    service: CustomerService = Depends(get_customer_service),
) -> Any:
    segment = await run_in_threadpool(service.get_customer_segment, customer_id)
    return BaseResponse(success=True, data={"segment": segment.model_dump(mode="json")})


@router.patch("/{customer_id}/segment", response_model=BaseResponse)
async def override_customer_segment(
    payload: SegmentOverrideRequest,
    customer_id: int = Path(..., gt=0),
    admin: CurrentUser = Depends(require_admin),
    service: CustomerService = Depends(get_customer_service),
) -> Any:
    """관리자 등급 수동 지정 - 다음 구매 정산 시 자동 재계산으로 덮어씀"""
    segment = await run_in_threadpool(
        service.override_segment, customer_id, payload, admin.user_id
    )
    return BaseResponse(success=True, data={"segment": segment.model_dump(mode="json")})
