"""
시간대 처리 유틸리티
토큰 만료 계산은 모두 UTC 기준
"""

from datetime import datetime, timezone, timedelta
from typing import Optional, Union

# 만료 5분 전부터 갱신 대상
REFRESH_BUFFER_SECONDS = 300


def utc_now() -> datetime:
    """현재 UTC 시간 반환"""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    datetime을 UTC로 변환

    Args:
        dt: 변환할 datetime (timezone aware or naive)

    Returns:
        UTC datetime
    """
    if dt.tzinfo is None:
        # naive datetime은 UTC로 가정
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_to_utc(iso_string: str) -> datetime:
    """ISO 형식 문자열을 UTC datetime으로 파싱"""
    return to_utc(datetime.fromisoformat(iso_string))


def expires_at_from(issued_at: datetime, expires_in: int) -> datetime:
    """발급 시각 + expires_in(초)"""
    return to_utc(issued_at) + timedelta(seconds=expires_in)


def refresh_threshold(now: datetime, buffer_seconds: int = REFRESH_BUFFER_SECONDS) -> datetime:
    """이 시각 이전에 만료되는 토큰은 갱신 대상"""
    return to_utc(now) + timedelta(seconds=buffer_seconds)


def is_expired(
    expires_at: Union[datetime, str],
    buffer_seconds: int = REFRESH_BUFFER_SECONDS,
    now: Optional[datetime] = None
) -> bool:
    """
    만료 여부 확인 (선택적 버퍼 시간 포함)

    Args:
        expires_at: 만료 시간
        buffer_seconds: 버퍼 시간 (기본 5분)
        now: 기준 시각 (None이면 현재 UTC)

    Returns:
        expires_at <= now + buffer 이면 True
    """
    if isinstance(expires_at, str):
        expires_at = parse_iso_to_utc(expires_at)

    now = now or utc_now()
    return to_utc(expires_at) <= refresh_threshold(now, buffer_seconds)


def time_until_expiry(expires_at: Union[datetime, str], now: Optional[datetime] = None) -> str:
    """
    만료까지 남은 시간을 사람이 읽기 쉬운 형태로 반환

    Args:
        expires_at: 만료 시간 (UTC)
        now: 기준 시각 (None이면 현재 UTC)

    Returns:
        남은 시간 문자열 (예: "2 hours 30 minutes")
    """
    if isinstance(expires_at, str):
        expires_at = parse_iso_to_utc(expires_at)

    remaining = to_utc(expires_at) - (now or utc_now())

    if remaining.total_seconds() <= 0:
        return "Expired"

    days = remaining.days
    hours, remainder = divmod(remaining.seconds, 3600)
    minutes, _ = divmod(remainder, 60)

    parts = []
    if days > 0:
        parts.append(f"{days} day{'s' if days != 1 else ''}")
    if hours > 0:
        parts.append(f"{hours} hour{'s' if hours != 1 else ''}")
    if minutes > 0 and days == 0:  # 날짜가 있으면 분은 생략
        parts.append(f"{minutes} minute{'s' if minutes != 1 else ''}")

    return " ".join(parts) if parts else "Less than a minute"
