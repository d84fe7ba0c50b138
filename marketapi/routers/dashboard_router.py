"""
대시보드 API 라우터 (관리자)

- GET /dashboard/overview: 일별 매출 추이, 지역별 매출, 인기 상품, 신규 구매자, 최근 활동
- GET /dashboard/metrics: 매출 목표 달성률 및 성장률 지표
- GET /dashboard/sales-report: 기간별 매출 리포트 (today / week / month / year)

start/end 를 함께 지정하면 time_range 대신 해당 구간을 사용합니다.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from marketapi.core.security import CurrentUser, require_admin
from marketapi.deps import get_dashboard_service
from marketapi.schemas.auth import BaseResponse
from marketapi.schemas.dashboard import SalesReportRangeEnum, TimeRangeEnum
from marketapi.services.dashboard_service import DashboardService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/overview", response_model=BaseResponse)
async def get_dashboard_overview(
    time_range: TimeRangeEnum = Query(TimeRangeEnum.WEEKLY, alias="timeRange"),
    region: Optional[str] = Query(None, max_length=100),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    admin: CurrentUser = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
) -> Any:
    overview = await run_in_threadpool(
        service.get_dashboard_overview, time_range, region, start, end
    )
    return BaseResponse(success=True, data=overview.model_dump(mode="json"))


@router.get("/metrics", response_model=BaseResponse)
async def get_dashboard_metrics(
    time_range: TimeRangeEnum = Query(TimeRangeEnum.WEEKLY, alias="timeRange"),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    admin: CurrentUser = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
) -> Any:
    metrics = await run_in_threadpool(
        service.get_dashboard_metrics, time_range, start, end
    )
    return BaseResponse(success=True, data=metrics.model_dump(mode="json"))


@router.get("/sales-report", response_model=BaseResponse)
async def get_sales_report(
    date_range: SalesReportRangeEnum = Query(SalesReportRangeEnum.YEAR, alias="dateRange"),
    region: Optional[str] = Query(None, max_length=100),
    admin: CurrentUser = Depends(require_admin),
    service: DashboardService = Depends(get_dashboard_service),
) -> Any:
    report = await run_in_threadpool(service.get_sales_report, date_range, region)
    return BaseResponse(success=True, data=report.model_dump(mode="json"))
