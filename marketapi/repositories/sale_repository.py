"""
매출 리포지토리

Sale 은 transaction_id 유니크 제약으로 거래당 1건만 존재합니다.
insert 는 애플리케이션 수준의 존재 확인이 아니라 DB 제약에 의존하며,
IntegrityError 처리는 정산 서비스가 담당합니다.
"""

from typing import Optional
from sqlalchemy.orm import Session

from marketapi.models.sale import Sale as SaleModel
from marketapi.repositories.base import BaseRepository
from marketapi.schemas.sale import SaleResponse


class SaleRepository(BaseRepository[SaleModel, SaleResponse]):
    def __init__(self, db: Session):
        super().__init__(SaleModel, SaleResponse, db)

    def get_by_transaction_id(self, transaction_id: int) -> Optional[SaleResponse]:
        self._ensure_clean_session()
        instance = (
            self.db.query(SaleModel)
            .filter(SaleModel.transaction_id == transaction_id)
            .first()
        )
        return self._to_schema(instance)

    def insert(self, **kwargs) -> SaleResponse:
        """
        매출 생성 (flush 만 수행, 커밋하지 않음)

        Raises:
            sqlalchemy.exc.IntegrityError: 같은 거래의 매출이 이미 존재하는 경우
        """
        instance = SaleModel(**kwargs)
        self.db.add(instance)
        self.db.flush()
        return self._to_schema(instance)
