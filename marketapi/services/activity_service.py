from datetime import datetime, timedelta
from typing import Dict, List, Optional
import logging

from sqlalchemy.orm import Session

from marketapi.config import Settings, settings as default_settings
from marketapi.repositories.activity_repository import ActivityRepository
from marketapi.repositories.product_repository import ProductRepository
from marketapi.schemas.activity import ActivityLogCreate, ActivityLogResponse
from marketapi.utils.date_utils import ensure_utc, utc_now

logger = logging.getLogger(__name__)


class ActivityService:
    """활동 로그 기록/조회 및 보존 기간 관리"""

    def __init__(self, db: Session, settings: Settings = default_settings):
        self.db = db
        self.settings = settings
        self.activity_repo = ActivityRepository(db)
        self.product_repo = ProductRepository(db)

    def activity_cutoff(self, now: Optional[datetime] = None) -> datetime:
        now = ensure_utc(now) if now else utc_now()
        return now - timedelta(days=self.settings.ACTIVITY_LOG_RETENTION_DAYS)

    def view_cutoff(self, now: Optional[datetime] = None) -> datetime:
        now = ensure_utc(now) if now else utc_now()
        return now - timedelta(hours=self.settings.VIEW_LOG_RETENTION_HOURS)

    def log_activity(
        self,
        entry: ActivityLogCreate,
        created_at: Optional[datetime] = None,
        commit: bool = True,
    ) -> ActivityLogResponse:
        """활동 로그 기록

        commit=False 이면 호출자의 트랜잭션에 포함됩니다 (정산 경로).
        """
        activity = self.activity_repo.add(entry, created_at=created_at)
        if commit:
            self.db.commit()
        return activity

    def get_recent_activities(
        self,
        limit: Optional[int] = None,
        user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[ActivityLogResponse]:
        """보존 기간 내 최근 활동 로그"""
        return self.activity_repo.get_recent(
            since=self.activity_cutoff(now),
            limit=limit or self.settings.RECENT_ACTIVITY_LIMIT,
            user_id=user_id,
        )

    def purge_expired(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """
        보존 기간이 지난 활동 로그(30일)와 조회 기록(24시간)을 물리적으로 삭제

        조회/집계는 삭제 여부와 무관하게 보존 기간 필터를 적용하므로,
        이 작업은 저장 공간 정리 목적입니다.
        """
        try:
            activities = self.activity_repo.purge_before(self.activity_cutoff(now))
            views = self.product_repo.purge_views_before(self.view_cutoff(now))
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to purge expired logs: {str(e)}")
            raise

        logger.info(f"Purged expired logs: activities={activities}, views={views}")
        return {"activity_logs": activities, "product_views": views}
