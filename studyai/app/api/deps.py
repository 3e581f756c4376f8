"""Shared FastAPI dependencies.

Each one can be replaced with `app.dependency_overrides` in tests.
"""

from datetime import date, datetime, timezone

from fastapi import Request

from studyai.app.providers.base import BaseProvider
from studyai.app.providers.factory import create_provider
from studyai.app.services.accounts import AccountStore


def get_today() -> date:
    """Current UTC date, the boundary for daily allowance rollover."""
    return datetime.now(timezone.utc).date()


def get_account_store(request: Request) -> AccountStore:
    store = getattr(request.app.state, "account_store", None)
    if store is None:
        store = AccountStore()
        request.app.state.account_store = store
    return store


def get_upstream_provider(request: Request) -> BaseProvider:
    """The shared upstream provider, built on first use.

    Raises:
        InternalError: If the upstream is not configured
    """
    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        provider = create_provider(getattr(request.app.state, "http_client", None))
        request.app.state.provider = provider
    return provider
