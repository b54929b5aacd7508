"""Tests for the daily recommendation quota."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from lexum.constants.entitlements import ENTITLEMENTS, get_entitlements
from lexum.exceptions import QuotaExceededError
from lexum.services.quota import QuotaState


FREE = ENTITLEMENTS["free"]


def user(used, reset_date):
    return SimpleNamespace(rec_requests_today=used, rec_reset_date=reset_date)


class TestQuotaState:

    def test_counts_today(self, now):
        quota = QuotaState.from_profile(user(7, now.date()), FREE, now)

        assert quota.used == 7
        assert quota.remaining == 3

    def test_stale_date_resets(self, now):
        quota = QuotaState.from_profile(user(10, now.date() - timedelta(days=1)), FREE, now)

        assert quota.used == 0
        assert quota.reset_date == now.date()

    def test_missing_user_row(self, now):
        assert QuotaState.from_profile(None, FREE, now).used == 0

    def test_reset_at_is_next_utc_midnight(self, now):
        quota = QuotaState.from_profile(user(0, None), FREE, now)
        assert quota.reset_at == datetime(2026, 3, 11, tzinfo=timezone.utc)

    def test_exhausted_quota_raises(self, now):
        quota = QuotaState.from_profile(user(10, now.date()), FREE, now)

        with pytest.raises(QuotaExceededError) as error:
            quota.ensure_available()

        detail = error.value.to_detail()
        assert detail["errorCode"] == "REC_LIMIT_REACHED"
        assert detail["remaining"] == 0
        assert detail["limit"] == 10
        assert detail["plan"] == "free"
        assert detail["resetAt"] == "2026-03-11T00:00:00+00:00"

    def test_clamp_requested(self, now):
        quota = QuotaState.from_profile(user(7, now.date()), FREE, now)

        assert quota.clamp_requested(None) == 3
        assert quota.clamp_requested(1) == 1
        assert quota.clamp_requested(-4) == 1
        assert quota.clamp_requested(50, plan_max=2) == 2

    def test_clamp_defaults_to_five(self, now):
        quota = QuotaState.from_profile(user(0, now.date()), FREE, now)
        assert quota.clamp_requested(None) == 5

    def test_consumed_stays_within_limit(self, now):
        quota = QuotaState.from_profile(user(7, now.date()), FREE, now)

        assert quota.consumed(5) == 10
        assert quota.consumed(0) == 7
        assert quota.consumed(-2) == 7

    def test_as_dict(self, now):
        quota = QuotaState.from_profile(user(4, now.date()), FREE, now)
        assert quota.as_dict() == {
            "used": 4, "max": 10, "left": 6, "resetAt": "2026-03-11T00:00:00+00:00", "plan": "free",
        }


class TestEntitlements:

    def test_unknown_plan_is_free(self):
        assert get_entitlements("enterprise") == FREE
        assert get_entitlements(None) == FREE

    def test_pro_can_regenerate(self):
        assert get_entitlements("pro").can_regen_plan
        assert not FREE.can_regen_plan
