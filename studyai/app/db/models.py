from datetime import date, datetime, timezone

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from studyai.app.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(Base):
    """One usage record per authenticated user.

    Quota is a daily counter: `daily_uses` counts successful requests made
    on `last_usage_date` and is treated as zero once that date is in the past.
    Premium accounts are never checked nor charged.
    """

    __tablename__ = "accounts"
    __table_args__ = (
        Index("idx_accounts_last_usage_date", "last_usage_date"),
    )

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    is_premium: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    daily_uses: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_usage_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<Account(user_id={self.user_id!r}, premium={self.is_premium}, "
            f"daily_uses={self.daily_uses}, last_usage_date={self.last_usage_date})>"
        )
