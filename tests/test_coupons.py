"""Tests for coupon rules and lookups."""

from datetime import date, datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from villabook.domain.coupons import (
    compute_discount,
    coupon_applies,
    describe_discount,
    list_public_coupons,
    normalize_code,
    validate_coupon,
)

from .helpers import make_coupon

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


class TestNormalizeCode:
    def test_strips_and_uppercases(self):
        assert normalize_code("  save10 ") == "SAVE10"

    def test_none_is_empty(self):
        assert normalize_code(None) == ""


class TestCouponApplies:
    def test_open_window(self):
        assert coupon_applies(make_coupon(), now=NOW, nights=1) is True

    def test_inactive(self):
        assert coupon_applies(make_coupon(is_active=False), now=NOW, nights=3) is False

    def test_not_started(self):
        coupon = make_coupon(valid_from=datetime(2026, 11, 1, tzinfo=timezone.utc))
        assert coupon_applies(coupon, now=NOW, nights=3) is False

    def test_ended(self):
        coupon = make_coupon(valid_to=datetime(2026, 10, 16, tzinfo=timezone.utc))
        assert coupon_applies(coupon, now=NOW, nights=3) is False

    def test_min_nights(self):
        coupon = make_coupon(min_nights=3)
        assert coupon_applies(coupon, now=NOW, nights=2) is False
        assert coupon_applies(coupon, now=NOW, nights=3) is True


class TestComputeDiscount:
    def test_percent(self):
        assert compute_discount(make_coupon(percent_off=10), 1000) == 100

    def test_percent_rounds_half_up(self):
        assert compute_discount(make_coupon(percent_off=15), 1010) == 152

    def test_amount(self):
        assert compute_discount(make_coupon(percent_off=None, amount_off=250), 1000) == 250

    @pytest.mark.parametrize("nightly_total", [0, 1, 99, 100])
    def test_never_exceeds_nightly_total(self, nightly_total):
        coupon = make_coupon(percent_off=None, amount_off=100)
        assert 0 <= compute_discount(coupon, nightly_total) <= nightly_total

    def test_no_discount_configured(self):
        assert compute_discount(make_coupon(percent_off=None, amount_off=None), 1000) == 0


class TestDescribeDiscount:
    def test_percent(self):
        assert describe_discount(make_coupon(percent_off=10)) == "10% discount"

    def test_amount_with_symbol(self):
        coupon = make_coupon(percent_off=None, amount_off=50)
        assert describe_discount(coupon) == "₪50 discount"
        assert describe_discount(coupon, "USD") == "$50 discount"


class TestValidateCoupon:
    def test_empty_code(self):
        assert validate_coupon("  ") == {"success": False, "error": "Coupon code is required"}

    def test_unknown_code(self):
        with patch("villabook.domain.coupons.find_coupon_by_code", return_value=None), \
             patch("villabook.domain.coupons.logger"):
            result = validate_coupon("nope", cur=MagicMock())
        assert result == {"success": False, "error": "Invalid coupon code"}

    def test_below_min_nights(self):
        coupon = make_coupon(min_nights=4)
        with patch("villabook.domain.coupons.find_coupon_by_code", return_value=coupon):
            result = validate_coupon("summer10", nights=2, cur=MagicMock())
        assert result == {
            "success": False,
            "error": "This coupon requires a minimum of 4 nights",
        }

    def test_valid(self):
        with patch("villabook.domain.coupons.find_coupon_by_code", return_value=make_coupon()) as mock_find:
            result = validate_coupon("summer10", nights=2, cur=MagicMock())
        assert mock_find.call_args.args[1] == "SUMMER10"
        assert result["success"] is True
        assert result["discount"] == "10% discount"
        assert result["coupon"]["code"] == "SUMMER10"


class TestListPublicCoupons:
    def _coupons(self):
        return [
            make_coupon(code="ALWAYS"),
            make_coupon(
                code="WINTER",
                valid_from=datetime(2026, 12, 1, tzinfo=timezone.utc),
                valid_to=datetime(2027, 2, 28, tzinfo=timezone.utc),
            ),
        ]

    def test_without_dates_returns_all(self):
        with patch("villabook.domain.coupons.list_active_public_coupons", return_value=self._coupons()):
            result = list_public_coupons(cur=MagicMock())
        assert [c["code"] for c in result] == ["ALWAYS", "WINTER"]

    def test_stay_outside_window_filtered(self):
        with patch("villabook.domain.coupons.list_active_public_coupons", return_value=self._coupons()):
            result = list_public_coupons(date(2026, 10, 19), date(2026, 10, 21), cur=MagicMock())
        assert [c["code"] for c in result] == ["ALWAYS"]

    def test_stay_inside_window_kept(self):
        with patch("villabook.domain.coupons.list_active_public_coupons", return_value=self._coupons()):
            result = list_public_coupons(date(2026, 12, 10), date(2026, 12, 14), cur=MagicMock())
        assert [c["code"] for c in result] == ["ALWAYS", "WINTER"]
        assert result[1]["valid_from"] == "2026-12-01T00:00:00+00:00"
