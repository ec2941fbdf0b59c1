"""
타임존 유틸리티

내부 저장은 항상 UTC, DB에는 ISO 8601 문자열로 기록
"""

from datetime import date, datetime, timezone


def now_utc() -> datetime:
    """현재 UTC 시간 반환 (타임존 명시)
    
    datetime.now(timezone.utc)의 축약형.
    
    Returns:
        현재 UTC 시간 (tzinfo=timezone.utc)
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """naive datetime은 UTC로 간주하여 타임존 부여
    
    Args:
        dt: datetime 객체
        
    Returns:
        UTC 타임존의 datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(value: datetime | date | None) -> str | None:
    """datetime/date를 ISO 문자열로 변환 (None은 그대로)"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()
    return value.isoformat()


def parse_datetime(value: str | None) -> datetime | None:
    """ISO 문자열을 UTC datetime으로 변환
    
    Example:
        >>> parse_datetime("2026-02-20T16:00:00+00:00")
        datetime(2026, 2, 20, 16, 0, tzinfo=timezone.utc)
    """
    if not value:
        return None
    return ensure_utc(datetime.fromisoformat(value))


def parse_date(value: str | None) -> date | None:
    """ISO 문자열(YYYY-MM-DD)을 date로 변환"""
    if not value:
        return None
    return date.fromisoformat(value)
