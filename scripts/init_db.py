import logging
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from marketapi.database.connection import engine  # noqa: E402
from marketapi.logging_config import setup_logging  # noqa: E402
from marketapi.models.base import Base  # noqa: E402

# 테이블 등록을 위해 모든 모델을 import
from marketapi.models import activity, customer, product, sale, transaction  # noqa: E402,F401

logger = logging.getLogger("marketapi")


def init_db():
    """데이터베이스 초기화 (테이블 생성)"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info(
            f"Database initialized successfully: {', '.join(sorted(Base.metadata.tables))}"
        )
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


if __name__ == "__main__":
    setup_logging()
    init_db()
