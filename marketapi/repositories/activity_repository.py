from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from marketapi.models.activity import ActivityLog as ActivityLogModel
from marketapi.repositories.base import BaseRepository
from marketapi.schemas.activity import ActivityLogCreate, ActivityLogResponse


class ActivityRepository(BaseRepository[ActivityLogModel, ActivityLogResponse]):
    """활동 로그 리포지토리 - 모든 조회는 보존 기간 시작 시각(since) 이후로 제한"""

    def __init__(self, db: Session):
        super().__init__(ActivityLogModel, ActivityLogResponse, db)

    def add(
        self, entry: ActivityLogCreate, created_at: Optional[datetime] = None
    ) -> ActivityLogResponse:
        """활동 로그 추가 (flush 만 수행)"""
        values = entry.model_dump()
        if created_at is not None:
            values["created_at"] = created_at
        instance = ActivityLogModel(**values)
        self.db.add(instance)
        self.db.flush()
        self.db.refresh(instance)
        return self._to_schema(instance)

    def get_recent(
        self, since: datetime, limit: int, user_id: Optional[str] = None
    ) -> List[ActivityLogResponse]:
        self._ensure_clean_session()
        query = self.db.query(ActivityLogModel).filter(
            ActivityLogModel.created_at >= since
        )
        if user_id is not None:
            query = query.filter(ActivityLogModel.user_id == user_id)

        rows = (
            query.order_by(desc(ActivityLogModel.created_at), desc(ActivityLogModel.id))
            .limit(limit)
            .all()
        )
        return self._to_schemas(rows)

    def purge_before(self, cutoff: datetime) -> int:
        """보존 기간이 지난 활동 로그 삭제 (커밋하지 않음)"""
        return (
            self.db.query(ActivityLogModel)
            .filter(ActivityLogModel.created_at < cutoff)
            .delete(synchronize_session=False)
        )
