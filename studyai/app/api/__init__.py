"""API endpoints package for the gateway."""

from studyai.app.api.account import router as account_router
from studyai.app.api.study import router as study_router

__all__ = [
    "account_router",
    "study_router",
]
