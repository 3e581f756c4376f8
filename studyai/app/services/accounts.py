"""Account quota store used by the gateway.

Wraps the account CRUD with the gateway's policy: lazy creation through
the privileged credential, the pre-dispatch allowance check, and the
post-success charge. The check and the charge are separate steps; the
charge itself is a conditional update, so two concurrent requests can
never push the counter past the daily limit.
"""

from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from studyai.app.core.config import settings
from studyai.app.core.logging import get_logger
from studyai.app.db.async_session import get_async_session, get_service_session
from studyai.app.db.crud.account import consume_daily_use, create_account, get_account
from studyai.app.db.models import Account
from studyai.app.exceptions import InternalError, QuotaExceededError
from studyai.app.services.quota import QuotaState, effective_uses, is_exhausted, remaining

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

ACCOUNT_SETUP_FAILED = "Could not set up your account. Please sign out and sign back in."


@dataclass(frozen=True)
class AccountRecord:
    user_id: str
    quota: QuotaState

    @property
    def is_premium(self) -> bool:
        return self.quota.is_premium

    @classmethod
    def from_model(cls, account: Account, daily_limit: int) -> "AccountRecord":
        return cls(
            user_id=account.user_id,
            quota=QuotaState(
                is_premium=account.is_premium,
                daily_uses=account.daily_uses,
                last_usage_date=account.last_usage_date,
                daily_limit=daily_limit,
            ),
        )

    def snapshot(self, today: date) -> Dict[str, Any]:
        """Client-facing view with rollover already applied."""
        uses = effective_uses(self.quota, today)
        return {
            "userId": self.user_id,
            "isPremium": self.is_premium,
            "dailyUses": uses,
            "dailyLimit": self.quota.daily_limit,
            "remaining": remaining(self.quota, today),
            "lastUsageDate": self.quota.last_usage_date.isoformat() if self.quota.last_usage_date else None,
        }


class AccountStore:
    """Read, create and charge account records."""

    def __init__(
        self,
        session_factory: SessionFactory = get_async_session,
        service_session_factory: SessionFactory = get_service_session,
        daily_limit: int | None = None,
    ):
        self._session_factory = session_factory
        self._service_session_factory = service_session_factory
        self.daily_limit = daily_limit or settings.daily_limit

    async def get(self, user_id: str) -> AccountRecord | None:
        async with self._session_factory() as session:
            account = await get_account(session, user_id)
        return AccountRecord.from_model(account, self.daily_limit) if account else None

    async def load_or_create(self, user_id: str) -> AccountRecord:
        """Load the account, creating it with defaults on first use.

        Raises:
            InternalError: If the record cannot be created or re-read
        """
        record = await self.get(user_id)
        if record is not None:
            return record

        try:
            async with self._service_session_factory() as session:
                await create_account(session, user_id)
        except SQLAlchemyError as e:
            logger.error(
                f"Account creation failed: {e}",
                extra={"user_id": user_id, "error_type": type(e).__name__},
            )
            raise InternalError(ACCOUNT_SETUP_FAILED)

        logger.info("Account created", extra={"user_id": user_id})

        record = await self.get(user_id)
        if record is None:
            logger.error("Account missing after creation", extra={"user_id": user_id})
            raise InternalError(ACCOUNT_SETUP_FAILED)
        return record

    def ensure_allowance(self, record: AccountRecord, today: date) -> None:
        """Reject a non-premium account that has used today's allowance.

        Raises:
            QuotaExceededError: If the allowance is exhausted
        """
        if is_exhausted(record.quota, today):
            used = effective_uses(record.quota, today)
            logger.info(
                "Daily allowance exhausted",
                extra={"user_id": record.user_id, "daily_uses": used},
            )
            raise QuotaExceededError(used=used, limit=record.quota.daily_limit)

    async def charge(self, record: AccountRecord, today: date) -> int | None:
        """Record one successful request.

        Premium accounts are never charged. A charge that finds the counter
        already at the limit (a concurrent request won the race) is logged
        and leaves the record unchanged.

        Returns:
            The new daily use count, or None when nothing was charged
        """
        if record.is_premium:
            return None

        async with self._session_factory() as session:
            charged, uses = await consume_daily_use(
                session, record.user_id, today, self.daily_limit
            )

        if not charged:
            logger.warning(
                "Charge skipped: allowance consumed concurrently",
                extra={"user_id": record.user_id, "daily_uses": uses},
            )
            return None

        logger.info("Charged one daily use", extra={"user_id": record.user_id, "daily_uses": uses})
        return uses
