"""Account CRUD operations."""
from __future__ import annotations

from datetime import date

from sqlalchemy import case, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from studyai.app.db.models import Account


async def get_account(session: AsyncSession, user_id: str) -> Account | None:
    """Fetch the account record for a user, or None if it does not exist."""
    result = await session.execute(select(Account).where(Account.user_id == user_id))
    return result.scalar_one_or_none()


async def create_account(
    session: AsyncSession,
    user_id: str,
    is_premium: bool = False,
) -> Account:
    """Create an account record with default allowance.

    A concurrent request for the same user may have inserted the row first;
    in that case the existing record is returned.

    Args:
        session: Session bound to the privileged datastore credential
        user_id: Subject identifier issued by the identity provider
        is_premium: Initial premium flag

    Returns:
        The created (or concurrently created) Account
    """
    account = Account(user_id=user_id, is_premium=is_premium, daily_uses=0)
    session.add(account)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        existing = await get_account(session, user_id)
        if existing is None:
            raise
        return existing
    await session.refresh(account)
    return account


async def consume_daily_use(
    session: AsyncSession,
    user_id: str,
    today: date,
    limit: int,
    auto_commit: bool = True,
) -> tuple[bool, int]:
    """Atomically record one successful request against the daily allowance.

    A single conditional UPDATE with RETURNING: the counter restarts at 1
    when the stored date is before `today`, otherwise it is incremented, and
    the row is only touched when the account is non-premium and still below
    `limit` for `today`.

    Args:
        session: Database session
        user_id: The account to charge
        today: Current date used for the day rollover
        limit: Daily ceiling
        auto_commit: Whether to commit the transaction

    Returns:
        Tuple of (success, daily_uses)
        - success: True if a use was recorded
        - daily_uses: Counter value after the operation (actual DB value)
    """
    stale = or_(Account.last_usage_date.is_(None), Account.last_usage_date < today)

    result = await session.execute(
        update(Account)
        .where(
            Account.user_id == user_id,
            Account.is_premium.is_(False),
            or_(stale, Account.daily_uses < limit),
        )
        .values(
            daily_uses=case((stale, 1), else_=Account.daily_uses + 1),
            last_usage_date=today,
        )
        .returning(Account.daily_uses)
        .execution_options(synchronize_session=False)
    )
    row = result.fetchone()

    if row is None:
        current = await session.execute(
            select(Account.daily_uses, Account.last_usage_date).where(Account.user_id == user_id)
        )
        current_row = current.fetchone()
        if current_row is None:
            return False, 0
        uses, last_date = current_row
        return False, uses if last_date is not None and last_date >= today else 0

    if auto_commit:
        await session.commit()

    return True, row[0]


async def set_premium(
    session: AsyncSession,
    user_id: str,
    is_premium: bool,
    auto_commit: bool = True,
) -> bool:
    """Flip the premium flag, e.g. after an external checkout completes.

    Returns:
        True if the account existed and was updated
    """
    result = await session.execute(
        update(Account)
        .where(Account.user_id == user_id)
        .values(is_premium=is_premium)
        .returning(Account.user_id)
        .execution_options(synchronize_session=False)
    )
    updated = result.fetchone() is not None
    if auto_commit:
        await session.commit()
    return updated
