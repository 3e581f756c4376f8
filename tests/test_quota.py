from datetime import date

from studyai.app.services.quota import (
    QuotaState,
    apply_usage,
    effective_uses,
    is_exhausted,
    remaining,
)

TODAY = date(2026, 3, 2)
YESTERDAY = date(2026, 3, 1)


def test_quota_counts_usage_today():
    state = QuotaState(is_premium=False, daily_uses=3, last_usage_date=TODAY, daily_limit=15)
    updated = apply_usage(state, TODAY)
    assert updated.daily_uses == 4
    assert updated.last_usage_date == TODAY
    assert remaining(updated, TODAY) == 11


def test_quota_resets_on_new_day():
    state = QuotaState(is_premium=False, daily_uses=15, last_usage_date=YESTERDAY, daily_limit=15)
    assert effective_uses(state, TODAY) == 0
    assert not is_exhausted(state, TODAY)

    updated = apply_usage(state, TODAY)
    assert updated.daily_uses == 1
    assert updated.last_usage_date == TODAY


def test_fresh_account_has_full_allowance():
    state = QuotaState(is_premium=False, daily_uses=0, last_usage_date=None, daily_limit=15)
    assert effective_uses(state, TODAY) == 0
    assert remaining(state, TODAY) == 15


def test_exhausted_at_ceiling():
    state = QuotaState(is_premium=False, daily_uses=15, last_usage_date=TODAY, daily_limit=15)
    assert is_exhausted(state, TODAY)
    assert remaining(state, TODAY) == 0


def test_one_below_ceiling_is_allowed():
    state = QuotaState(is_premium=False, daily_uses=14, last_usage_date=TODAY, daily_limit=15)
    assert not is_exhausted(state, TODAY)
    assert remaining(state, TODAY) == 1


def test_premium_bypasses_quota():
    state = QuotaState(is_premium=True, daily_uses=99, last_usage_date=TODAY, daily_limit=15)
    assert not is_exhausted(state, TODAY)
    assert remaining(state, TODAY) is None
    assert apply_usage(state, TODAY) == state
