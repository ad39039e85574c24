"""
날짜 경계 유틸리티

일일/주간 제한은 모두 UTC 자정 기준으로 계산합니다.
(사용자별 타임존 경계는 사용하지 않음)
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Tuple

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """현재 UTC 시간 (timezone-aware)"""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """naive datetime은 UTC로 간주"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_key(now: datetime) -> date:
    """now가 속한 UTC 달력 날짜

    Examples:
        >>> day_key(datetime(2025, 1, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5))))
        datetime.date(2025, 1, 2)
    """
    return to_utc(now).date()


def week_bounds(now: datetime) -> Tuple[date, date]:
    """now가 속한 주(월요일 시작, UTC)의 첫날과 마지막날"""
    today = day_key(now)
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)
