"""Explicit session and account context for the client.

The caller owns a StudySession and passes it to every request; nothing is
kept in module-level state.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Mapping, Optional

from studyai.app.services.quota import QuotaState, is_exhausted, remaining

DEFAULT_DAILY_LIMIT = 15


@dataclass
class AccountSnapshot:
    """Locally cached copy of the account; the gateway stays authoritative."""
    is_premium: bool = False
    daily_uses: int = 0
    daily_limit: int = DEFAULT_DAILY_LIMIT
    last_usage_date: Optional[date] = None

    def quota_state(self) -> QuotaState:
        return QuotaState(
            is_premium=self.is_premium,
            daily_uses=self.daily_uses,
            last_usage_date=self.last_usage_date,
            daily_limit=self.daily_limit,
        )

    def remaining(self, today: date) -> Optional[int]:
        return remaining(self.quota_state(), today)

    def is_exhausted(self, today: date) -> bool:
        return is_exhausted(self.quota_state(), today)

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "AccountSnapshot":
        """Build from the gateway's GET /account body."""
        last = data.get("lastUsageDate")
        return cls(
            is_premium=bool(data.get("isPremium", False)),
            daily_uses=int(data.get("dailyUses", 0)),
            daily_limit=int(data.get("dailyLimit", DEFAULT_DAILY_LIMIT)),
            last_usage_date=date.fromisoformat(last) if last else None,
        )


@dataclass
class StudySession:
    access_token: str
    account: AccountSnapshot = field(default_factory=AccountSnapshot)

    def auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}
