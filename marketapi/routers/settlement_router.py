import logging
from typing import Any

from fastapi import APIRouter, Depends, Path
from fastapi.concurrency import run_in_threadpool

from marketapi.core.security import CurrentUser, require_admin
from marketapi.deps import get_settlement_service
from marketapi.schemas.auth import BaseResponse
from marketapi.services.settlement_service import SettlementService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/settlement", tags=["settlement"])


@router.post("/transactions/{transaction_id}", response_model=BaseResponse)
async def settle_transaction(
    transaction_id: int = Path(..., gt=0),
    admin: CurrentUser = Depends(require_admin),
    service: SettlementService = Depends(get_settlement_service),
) -> Any:
    """
    거래 수동 정산 (멱등)

    이미 정산된 거래는 기존 매출을 그대로 반환합니다.
    503 응답은 전체 롤백된 상태이므로 그대로 재시도하면 됩니다.
    """
    sale = await run_in_threadpool(service.settle_transaction, transaction_id)
    logger.info(f"Admin {admin.user_id} settled transaction {transaction_id} -> sale {sale.id}")
    return BaseResponse(success=True, data={"sale": sale.model_dump(mode="json")})
