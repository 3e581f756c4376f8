from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class QuotaState:
    is_premium: bool
    daily_uses: int
    last_usage_date: date | None
    daily_limit: int


def effective_uses(state: QuotaState, today: date) -> int:
    """Uses counted against `today`; a counter from an earlier day is spent."""
    if state.last_usage_date is None or state.last_usage_date < today:
        return 0
    return state.daily_uses


def remaining(state: QuotaState, today: date) -> int | None:
    """Requests left today, or None for premium accounts (unlimited)."""
    if state.is_premium:
        return None
    return max(0, state.daily_limit - effective_uses(state, today))


def is_exhausted(state: QuotaState, today: date) -> bool:
    if state.is_premium:
        return False
    return effective_uses(state, today) >= state.daily_limit


def apply_usage(state: QuotaState, today: date) -> QuotaState:
    """State after one successful request. Premium accounts are unchanged."""
    if state.is_premium:
        return state
    return QuotaState(
        is_premium=False,
        daily_uses=effective_uses(state, today) + 1,
        last_usage_date=today,
        daily_limit=state.daily_limit,
    )
