"""
time_utils.py 단위 테스트
"""

from datetime import datetime, timedelta, timezone

from mail_oauth.time_utils import is_expired, time_until_expiry, to_utc, utc_now

NOW = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


class TestIsExpired:
    """만료 + 버퍼 판정"""

    def test_within_buffer(self):
        assert is_expired(NOW + timedelta(seconds=299), now=NOW) is True

    def test_at_buffer_boundary(self):
        assert is_expired(NOW + timedelta(seconds=300), now=NOW) is True

    def test_outside_buffer(self):
        assert is_expired(NOW + timedelta(seconds=301), now=NOW) is False

    def test_no_buffer(self):
        assert is_expired(NOW + timedelta(seconds=1), buffer_seconds=0, now=NOW) is False
        assert is_expired(NOW, buffer_seconds=0, now=NOW) is True

    def test_iso_string_and_naive(self):
        """ISO 문자열 / naive datetime 은 UTC 로 해석"""
        assert is_expired("2026-01-15T10:00:00+00:00", now=NOW) is False
        assert is_expired(datetime(2026, 1, 15, 9, 1, 0), now=NOW) is True


class TestTimeUntilExpiry:
    """남은 시간 문자열"""

    def test_expired(self):
        assert time_until_expiry(NOW - timedelta(seconds=1), now=NOW) == "Expired"

    def test_hours_minutes(self):
        assert time_until_expiry(NOW + timedelta(hours=2, minutes=30), now=NOW) == "2 hours 30 minutes"

    def test_days_drop_minutes(self):
        assert time_until_expiry(NOW + timedelta(days=1, hours=1, minutes=5), now=NOW) == "1 day 1 hour"

    def test_under_a_minute(self):
        assert time_until_expiry(NOW + timedelta(seconds=30), now=NOW) == "Less than a minute"


def test_to_utc_converts_aware():
    kst = timezone(timedelta(hours=9))
    assert to_utc(datetime(2026, 1, 15, 18, 0, tzinfo=kst)) == NOW


def test_now_defaults_to_current_time():
    """now 생략 시 현재 UTC 시각 기준"""
    assert is_expired(utc_now() + timedelta(hours=1), now=None) is False
    assert is_expired(utc_now() - timedelta(seconds=1)) is True
    assert time_until_expiry(utc_now() - timedelta(seconds=1), now=None) == "Expired"
