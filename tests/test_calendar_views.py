"""Tests for the month calendar and admin calendar edits."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock, call, patch

import pytest

from villabook.domain.calendar_views import (
    admin_check_availability,
    block_dates,
    list_blocked_periods,
    list_reservations,
    month_availability,
    quick_reserve,
    unblock,
)

from .helpers import make_property

NOW = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)
TODAY = date(2026, 10, 17)

MODULE = "villabook.domain.calendar_views"
GUEST_ID = "5b0c7a2e-8f1d-4c3a-9e6b-2d4f8a1c7e90"


@pytest.fixture
def cur():
    """Patch txn and property resolution; yields the cursor handed out by txn."""
    with patch(f"{MODULE}.txn") as mock_txn, \
         patch(f"{MODULE}.resolve_property", return_value=make_property()), \
         patch(f"{MODULE}.logger"), \
         patch(f"{MODULE}.user_exists", return_value=True), \
         patch("villabook.domain.availability.utc_now", return_value=NOW):
        cursor = MagicMock()
        mock_txn.return_value.__enter__.return_value = cursor
        yield cursor


class TestMonthAvailability:
    @pytest.fixture
    def month(self, cur):
        blocks = [
            {"id": "b-1", "start_date": date(2026, 10, 25), "end_date": date(2026, 10, 26), "reason": None},
        ]
        reservations = [
            {
                "id": "r-1",
                "check_in": date(2026, 10, 20),
                "check_out": date(2026, 10, 22),
                "status": "PAID",
                "hold_expires_at": None,
            },
            {
                "id": "r-2",
                "check_in": date(2026, 10, 28),
                "check_out": date(2026, 10, 30),
                "status": "PENDING",
                "hold_expires_at": NOW - timedelta(minutes=1),
            },
        ]
        overrides = {"2026-10-29": {"date": date(2026, 10, 29), "price_per_night": 900}}
        with patch(f"{MODULE}.list_blocks", return_value=blocks), \
             patch(f"{MODULE}.find_conflicting_reservations", return_value=reservations) as mock_res, \
             patch(f"{MODULE}.fetch_custom_pricing_by_date", return_value=overrides), \
             patch(f"{MODULE}.property_today", return_value=TODAY):
            result = month_availability(None, 2026, 10)
            yield result, mock_res

    def test_covers_every_day_of_month(self, month):
        result, _ = month
        assert result["success"] is True
        assert len(result["days"]) == 31
        assert min(result["days"]) == "2026-10-01"
        assert max(result["days"]) == "2026-10-31"

    def test_past_days(self, month):
        days = month[0]["days"]
        assert days["2026-10-16"] == {"available": False, "reason": "Past date"}
        assert days["2026-10-17"]["available"] is True

    def test_reservation_half_open(self, month):
        days = month[0]["days"]
        assert days["2026-10-20"]["reason"] == "Already booked"
        assert days["2026-10-21"]["reason"] == "Already booked"
        assert days["2026-10-22"]["available"] is True

    def test_block_inclusive_of_end_date(self, month):
        days = month[0]["days"]
        assert days["2026-10-25"]["reason"] == "Already booked"
        assert days["2026-10-26"]["reason"] == "Already booked"
        assert days["2026-10-27"]["available"] is True

    def test_expired_hold_ignored_and_override_priced(self, month):
        days = month[0]["days"]
        assert days["2026-10-28"]["available"] is True
        assert days["2026-10-29"] == {"available": True, "price": 900, "min_stay": 1}

    def test_prices_follow_weekend_rule(self, month):
        days = month[0]["days"]
        assert days["2026-10-22"]["price"] == 600  # Thursday
        assert days["2026-10-27"]["price"] == 500  # Tuesday

    def test_reservation_query_spans_month(self, month):
        kwargs = month[1].call_args.kwargs
        assert kwargs["check_in"] == date(2026, 10, 1)
        assert kwargs["check_out"] == date(2026, 11, 1)

    def test_december_rolls_year(self, cur):
        with patch(f"{MODULE}.list_blocks", return_value=[]), \
             patch(f"{MODULE}.find_conflicting_reservations", return_value=[]), \
             patch(f"{MODULE}.fetch_custom_pricing_by_date", return_value={}), \
             patch(f"{MODULE}.property_today", return_value=TODAY):
            result = month_availability(None, 2026, 12)
        assert len(result["days"]) == 31
        assert "2026-12-31" in result["days"]


class TestListBlockedPeriods:
    def test_serializes(self, cur):
        rows = [{"id": "b-1", "property_id": "villa-1", "start_date": date(2026, 11, 1),
                 "end_date": date(2026, 11, 3), "reason": "Family"}]
        with patch(f"{MODULE}.list_blocks", return_value=rows):
            result = list_blocked_periods(None)
        assert result["blocked_periods"][0]["start_date"] == "2026-11-01"
        assert result["blocked_periods"][0]["reason"] == "Family"


class TestBlockDates:
    def test_rejects_inverted_range(self):
        result = block_dates(None, date(2026, 11, 3), date(2026, 11, 1))
        assert result["success"] is False

    def test_refuses_when_reservation_overlaps(self, cur):
        paid = {"id": "r-1", "status": "PAID", "hold_expires_at": None}
        with patch(f"{MODULE}.find_conflicting_reservations", return_value=[paid]) as mock_res, \
             patch(f"{MODULE}.insert_blocked_period") as mock_insert:
            result = block_dates(None, date(2026, 11, 1), date(2026, 11, 3))

        assert result["success"] is False
        assert "existing reservation" in result["error"]
        mock_insert.assert_not_called()
        # closed block range checked as the half-open stay [start, end + 1)
        assert mock_res.call_args.kwargs["check_out"] == date(2026, 11, 4)

    def test_inserts_and_audits(self, cur):
        with patch(f"{MODULE}.find_conflicting_reservations", return_value=[]), \
             patch(f"{MODULE}.advisory_xact_lock") as mock_lock, \
             patch(f"{MODULE}.insert_blocked_period", return_value="b-9") as mock_insert, \
             patch(f"{MODULE}.insert_audit_log") as mock_audit:
            result = block_dates(
                None, date(2026, 11, 1), date(2026, 11, 3), "Owner stay", actor_user_id="admin-1"
            )

        assert result["success"] is True
        assert result["blocked_period"]["id"] == "b-9"
        assert mock_lock.call_args == call(cur, "reservations:villa-1")
        assert mock_insert.call_args.kwargs["reason"] == "Owner stay"
        assert mock_audit.call_args.kwargs["action"] == "DATES_BLOCKED"
        assert mock_audit.call_args.kwargs["actor_user_id"] == "admin-1"


class TestUnblock:
    def test_missing(self, cur):
        with patch(f"{MODULE}.delete_blocked_period", return_value=None):
            assert unblock("nope") == {"success": False, "error": "Blocked period not found"}

    def test_deletes_and_audits(self, cur):
        row = {"id": "b-1", "start_date": date(2026, 11, 1), "end_date": date(2026, 11, 3)}
        with patch(f"{MODULE}.delete_blocked_period", return_value=row), \
             patch(f"{MODULE}.insert_audit_log") as mock_audit:
            assert unblock("b-1", actor_user_id="admin-1") == {"success": True}
        assert mock_audit.call_args.kwargs["action"] == "DATES_UNBLOCKED"
        assert mock_audit.call_args.kwargs["target_id"] == "b-1"


class TestQuickReserve:
    def _reserve(self, **overrides):
        kwargs = dict(
            property_id=None,
            user_id=GUEST_ID,
            check_in=date(2026, 11, 1),
            check_out=date(2026, 11, 4),
            adults=2,
        )
        kwargs.update(overrides)
        return quick_reserve(**kwargs)

    def test_invalid_status(self):
        result = self._reserve(status="PENDING")
        assert result == {"success": False, "error": "Invalid status: PENDING"}

    def test_invalid_dates(self):
        result = self._reserve(check_out=date(2026, 11, 1))
        assert result["success"] is False

    def test_too_many_adults(self, cur):
        result = self._reserve(adults=7)
        assert result == {"success": False, "error": "Maximum 6 adults allowed"}

    def test_unavailable(self, cur):
        with patch(f"{MODULE}.check_availability",
                   return_value={"available": False, "reason": "Selected dates are already booked"}), \
             patch(f"{MODULE}.insert_reservation") as mock_insert:
            result = self._reserve()
        assert result["error"] == "Selected dates are not available"
        assert result["details"] == "Selected dates are already booked"
        mock_insert.assert_not_called()

    def test_creates_reservation(self, cur):
        with patch(f"{MODULE}.check_availability", return_value={"available": True}), \
             patch(f"{MODULE}.advisory_xact_lock"), \
             patch(f"{MODULE}.insert_reservation", return_value="res-5") as mock_insert, \
             patch(f"{MODULE}.insert_audit_log") as mock_audit:
            result = self._reserve(total=2000, status="APPROVED", actor_user_id="admin-1")

        assert result["success"] is True
        assert result["reservation"]["id"] == "res-5"
        assert result["reservation"]["nights"] == 3
        kwargs = mock_insert.call_args.kwargs
        assert kwargs["status"] == "APPROVED"
        assert kwargs["total"] == 2000
        assert "hold_expires_at" not in kwargs
        assert mock_audit.call_args.kwargs["action"] == "RESERVATION_CREATED"

    def test_default_status_awaits_approval(self, cur):
        with patch(f"{MODULE}.check_availability", return_value={"available": True}), \
             patch(f"{MODULE}.advisory_xact_lock"), \
             patch(f"{MODULE}.insert_reservation", return_value="res-6") as mock_insert, \
             patch(f"{MODULE}.insert_audit_log"):
            self._reserve()
        assert mock_insert.call_args.kwargs["status"] == "AWAITING_APPROVAL"

    def test_malformed_user_id(self, cur):
        with patch(f"{MODULE}.insert_reservation") as mock_insert:
            result = self._reserve(user_id="guest-1")
        assert result == {"success": False, "error": "User not found"}
        mock_insert.assert_not_called()

    def test_unknown_user(self, cur):
        with patch(f"{MODULE}.user_exists", return_value=False) as mock_exists, \
             patch(f"{MODULE}.insert_reservation") as mock_insert:
            result = self._reserve()
        assert result == {"success": False, "error": "User not found"}
        mock_exists.assert_called_once_with(cur, GUEST_ID)
        mock_insert.assert_not_called()


class TestListReservations:
    def test_drops_lapsed_holds(self, cur):
        rows = [
            {
                "id": "r-1",
                "check_in": date(2026, 10, 20),
                "check_out": date(2026, 10, 22),
                "status": "PAID",
                "hold_expires_at": None,
                "guest_email": "ana@example.com",
            },
            {
                "id": "r-2",
                "check_in": date(2026, 10, 24),
                "check_out": date(2026, 10, 26),
                "status": "PENDING",
                "hold_expires_at": NOW - timedelta(minutes=1),
            },
            {
                "id": "r-3",
                "check_in": date(2026, 10, 28),
                "check_out": date(2026, 10, 30),
                "status": "PENDING",
                "hold_expires_at": NOW + timedelta(minutes=20),
            },
        ]
        with patch(f"{MODULE}.list_reservation_rows", return_value=rows) as mock_rows:
            result = list_reservations(None, date(2026, 10, 1), date(2026, 10, 31))

        assert result["success"] is True
        assert [r["id"] for r in result["reservations"]] == ["r-1", "r-3"]
        assert result["reservations"][0]["check_in"] == "2026-10-20"
        assert result["reservations"][1]["hold_expires_at"] == "2026-10-17T09:20:00+00:00"
        kwargs = mock_rows.call_args.kwargs
        assert kwargs["property_id"] == "villa-1"
        assert set(kwargs["statuses"]) == {"PENDING", "AWAITING_APPROVAL", "APPROVED", "PAID"}

    def test_no_property(self, cur):
        with patch(f"{MODULE}.resolve_property", return_value=None):
            assert list_reservations(None) == {"success": False, "error": "No property found"}


class TestAdminCheckAvailability:
    @pytest.fixture(autouse=True)
    def today(self):
        with patch(f"{MODULE}.property_today", return_value=TODAY):
            yield

    def test_excludes_edited_reservation(self, cur):
        with patch(f"{MODULE}.check_availability", return_value={"available": True}) as mock_check:
            result = admin_check_availability(
                None, date(2026, 11, 1), date(2026, 11, 4), exclude_reservation_id="res-1"
            )
        assert result == {"success": True, "available": True, "message": "Dates are available"}
        mock_check.assert_called_once_with(
            "villa-1",
            date(2026, 11, 1),
            date(2026, 11, 4),
            cur=cur,
            exclude_reservation_id="res-1",
        )

    def test_unavailable(self, cur):
        with patch(f"{MODULE}.check_availability",
                   return_value={"available": False, "reason": "Selected dates are already booked"}):
            result = admin_check_availability(None, date(2026, 11, 1), date(2026, 11, 4))
        assert result["available"] is False
        assert result["message"] == "Selected dates are not available"
        assert result["reason"] == "Selected dates are already booked"

    def test_past_check_in(self, cur):
        result = admin_check_availability(None, date(2026, 10, 16), date(2026, 10, 18))
        assert result["error"] == "Check-in date cannot be in the past"

    def test_inverted_range(self, cur):
        result = admin_check_availability(None, date(2026, 11, 4), date(2026, 11, 1))
        assert result["error"] == "Check-out date must be after check-in date"
