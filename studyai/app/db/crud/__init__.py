"""CRUD operations package."""

from studyai.app.db.crud.account import (
    consume_daily_use,
    create_account,
    get_account,
    set_premium,
)

__all__ = [
    "consume_daily_use",
    "create_account",
    "get_account",
    "set_premium",
]
