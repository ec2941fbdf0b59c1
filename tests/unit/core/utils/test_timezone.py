"""
타임존 유틸리티 테스트
"""

from datetime import date, datetime, timedelta, timezone

from core.utils.timezone import ensure_utc, now_utc, parse_date, parse_datetime, to_iso


class TestNowUtc:
    def test_is_aware_utc(self) -> None:
        assert now_utc().tzinfo == timezone.utc


class TestEnsureUtc:
    """ensure_utc 테스트"""

    def test_naive_assumed_utc(self) -> None:
        result = ensure_utc(datetime(2026, 3, 1, 9, 0))

        assert result == datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def test_converts_offset(self) -> None:
        kst = timezone(timedelta(hours=9))

        result = ensure_utc(datetime(2026, 3, 1, 9, 0, tzinfo=kst))

        assert result == datetime(2026, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc


class TestIsoConversion:
    """ISO 문자열 변환 테스트"""

    def test_to_iso(self) -> None:
        assert to_iso(None) is None
        assert to_iso(date(2026, 5, 1)) == "2026-05-01"
        assert to_iso(datetime(2026, 5, 1, 12, 0)) == "2026-05-01T12:00:00+00:00"

    def test_parse(self) -> None:
        assert parse_datetime("2026-02-20T16:00:00+00:00") == datetime(2026, 2, 20, 16, 0, tzinfo=timezone.utc)
        assert parse_datetime(None) is None
        assert parse_date("2026-05-01") == date(2026, 5, 1)
        assert parse_date("") is None
