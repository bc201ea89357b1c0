"""Tests for time utilities."""

from datetime import date, datetime, timezone
from unittest.mock import patch
from zoneinfo import ZoneInfo

from villabook.infra.time import property_timezone, property_today, utc_now


class TestUtcNow:
    def test_returns_utc_datetime(self):
        assert utc_now().tzinfo == timezone.utc

    def test_returns_current_time(self):
        before = datetime.now(timezone.utc)
        now = utc_now()
        after = datetime.now(timezone.utc)
        assert before <= now <= after


class TestPropertyToday:
    def test_default_timezone(self, monkeypatch):
        monkeypatch.delenv("PROPERTY_TIMEZONE", raising=False)
        assert property_timezone() == ZoneInfo("Asia/Jerusalem")

    def test_day_rolls_over_in_property_zone(self, monkeypatch):
        monkeypatch.setenv("PROPERTY_TIMEZONE", "Asia/Jerusalem")
        # 22:30 UTC on Oct 18 is already Oct 19 in Jerusalem (UTC+3)
        late_utc = datetime(2026, 10, 18, 22, 30, tzinfo=timezone.utc)
        with patch("villabook.infra.time.utc_now", return_value=late_utc):
            assert property_today() == date(2026, 10, 19)

    def test_configured_timezone(self, monkeypatch):
        monkeypatch.setenv("PROPERTY_TIMEZONE", "UTC")
        late_utc = datetime(2026, 10, 18, 22, 30, tzinfo=timezone.utc)
        with patch("villabook.infra.time.utc_now", return_value=late_utc):
            assert property_today() == date(2026, 10, 18)
