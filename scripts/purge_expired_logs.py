"""
보존 기간이 지난 활동 로그(30일)와 상품 조회 기록(24시간) 삭제

주기 실행(cron, EventBridge 등)을 가정합니다.
"""

import logging
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from marketapi.config import settings  # noqa: E402
from marketapi.containers import Container  # noqa: E402
from marketapi.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger("marketapi")


def purge_expired_logs() -> dict:
    container = Container()
    try:
        activity_service = container.services.activity_service()
        return activity_service.purge_expired()
    finally:
        container.shutdown_resources()


if __name__ == "__main__":
    setup_logging(settings.LOG_LEVEL)
    result = purge_expired_logs()
    logger.info(f"Expired logs purged: {result}")
