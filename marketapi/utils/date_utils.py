from datetime import date, datetime, timedelta, timezone
from typing import Any, Iterator, Optional, Tuple
import logging

# 로거 설정
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """timezone-aware UTC 현재 시각"""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    naive datetime 을 UTC 로 간주하여 tzinfo 를 부여

    SQLite 는 timezone 정보를 저장하지 않으므로, 읽어온 값은 UTC 로 해석합니다.
    aware datetime 은 UTC 로 변환하여 반환합니다.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_date(value: Any) -> Optional[date]:
    """
    SQLAlchemy Date/DateTime 컬럼 값 또는 집계 결과를 안전하게 Python date 타입으로 변환

    PostgreSQL 의 date() 집계는 date 객체를, SQLite 는 'YYYY-MM-DD' 문자열을 반환하므로
    일별 버킷 키를 맞추는 데 사용합니다.

    Examples:
        >>> to_date(datetime(2023, 12, 25, 10, 30))
        date(2023, 12, 25)

        >>> to_date("2023-12-25")
        date(2023, 12, 25)

        >>> to_date(None)
        None
    """
    if value is None:
        return None

    # 이미 date 타입인 경우
    if isinstance(value, date) and not isinstance(value, datetime):
        return value

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, str):
        if not value.strip():
            return None

        try:
            # YYYY-MM-DD 형식
            if len(value) == 10 and value.count("-") == 2:
                year, month, day = map(int, value.split("-"))
                return date(year, month, day)

            parsed_datetime = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed_datetime.date()

        except ValueError:
            logger.warning(f"날짜 문자열 파싱 실패: {value}")
            return None

    logger.warning(f"지원하지 않는 타입: {type(value)} - {value}")
    return None


def start_of_day(value: datetime) -> datetime:
    return ensure_utc(value).replace(hour=0, minute=0, second=0, microsecond=0)


def trailing_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """now 로 끝나는 최근 N일 구간 [start, end)"""
    end = ensure_utc(now) if now else utc_now()
    return end - timedelta(days=days), end


def previous_window(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """
    주어진 구간 바로 앞의 같은 길이 구간

    Examples:
        >>> previous_window(datetime(2024, 1, 8), datetime(2024, 1, 15))
        (datetime(2024, 1, 1), datetime(2024, 1, 8))
    """
    length = end - start
    return start - length, start


def iter_days(start: datetime, end: datetime) -> Iterator[date]:
    """
    [start, end) 구간에 걸치는 UTC 달력 날짜를 순서대로 생성

    end 가 자정이면 해당 날짜는 포함하지 않습니다.
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    if end <= start:
        return

    current = start.date()
    last = (end - timedelta(microseconds=1)).date()
    while current <= last:
        yield current
        current += timedelta(days=1)


def elapsed_days(since: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """since 이후 경과한 일수 (내림, 음수는 0)"""
    if since is None:
        return None
    now = ensure_utc(now) if now else utc_now()
    delta = now - ensure_utc(since)
    return max(delta.days, 0)
