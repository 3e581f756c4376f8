"""Database package for the account quota store.

This package provides:
- The Account model
- Async session management (regular and privileged credentials)
- Account CRUD operations
"""

from studyai.app.db.base import Base
from studyai.app.db.models import Account
from studyai.app.db.async_session import (
    close_async_engine,
    get_async_engine,
    get_async_session,
    get_service_session,
)
from studyai.app.db.crud import (
    consume_daily_use,
    create_account,
    get_account,
    set_premium,
)

__all__ = [
    "Base",
    "Account",
    "close_async_engine",
    "get_async_engine",
    "get_async_session",
    "get_service_session",
    "consume_daily_use",
    "create_account",
    "get_account",
    "set_premium",
]
