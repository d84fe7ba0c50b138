"""
거래 API 라우터

- POST /transactions: 거래 생성 (pending / unpaid)
- GET /transactions/stats: 상태별 거래 통계 (관리자)
- GET /transactions/{transaction_id}: 거래 조회
- PATCH /transactions/{transaction_id}/status: 상태 변경 (관리자, 결제 웹훅과 동일 경로)
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from fastapi.concurrency import run_in_threadpool

from marketapi.core.security import CurrentUser, get_current_user, require_admin
from marketapi.deps import get_transaction_service
from marketapi.schemas.auth import BaseResponse
from marketapi.schemas.transaction import (
    TransactionCreate,
    TransactionStatusUpdateRequest,
)
from marketapi.services.transaction_service import TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("", response_model=BaseResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
) -> Any:
    transaction = await run_in_threadpool(service.create_transaction, payload)
    return BaseResponse(
        success=True, data={"transaction": transaction.model_dump(mode="json")}
    )


@router.get("/stats", response_model=BaseResponse)
async def get_transaction_stats(
    customer_id: Optional[int] = Query(None, gt=0),
    admin: CurrentUser = Depends(require_admin),
    service: TransactionService = Depends(get_transaction_service),
) -> Any:
    stats = await run_in_threadpool(service.get_transaction_stats, customer_id)
    return BaseResponse(success=True, data=stats.model_dump(mode="json"))


@router.get("/{transaction_id}", response_model=BaseResponse)
async def get_transaction(
    transaction_id: int = Path(..., gt=0),
    current_user: CurrentUser = Depends(get_current_user),
    service: TransactionService = Depends(get_transaction_service),
) -> Any:
    transaction = await run_in_threadpool(service.get_transaction, transaction_id)
    return BaseResponse(
        success=True, data={"transaction": transaction.model_dump(mode="json")}
    )


@router.patch("/{transaction_id}/status", response_model=BaseResponse)
async def update_transaction_status(
    payload: TransactionStatusUpdateRequest,
    transaction_id: int = Path(..., gt=0),
    admin: CurrentUser = Depends(require_admin),
    service: TransactionService = Depends(get_transaction_service),
) -> Any:
    """상태 변경 - (completed, paid) 진입 시 정산까지 수행"""
    result = await run_in_threadpool(service.update_status, transaction_id, payload)
    logger.info(
        f"Admin {admin.user_id} updated transaction {transaction_id} (settled={result.settled})"
    )
    return BaseResponse(success=True, data=result.model_dump(mode="json"))
