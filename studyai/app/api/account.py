"""Account snapshot endpoint used by clients to refresh cached usage."""

from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Depends

from studyai.app.api.deps import get_account_store, get_today
from studyai.app.core.security import Identity
from studyai.app.middleware.auth import require_identity
from studyai.app.services.accounts import AccountStore

router = APIRouter()


@router.get("/account")
async def read_account(
    identity: Identity = Depends(require_identity),
    store: AccountStore = Depends(get_account_store),
    today: date = Depends(get_today),
) -> Dict[str, Any]:
    """Return the caller's account with today's effective usage."""
    record = await store.load_or_create(identity.user_id)
    return record.snapshot(today)
