"""Client for the study gateway: stream consumer and session context."""

from studyai.client.consumer import (
    AbortHandle,
    Notice,
    NoticeKind,
    RequestState,
    StudyClient,
    StudyResult,
)
from studyai.client.session import AccountSnapshot, StudySession
from studyai.client.sse import DeltaAccumulator, ErrorFrame, LineFramer, extract_delta, parse_line

__all__ = [
    "AbortHandle",
    "AccountSnapshot",
    "DeltaAccumulator",
    "ErrorFrame",
    "LineFramer",
    "Notice",
    "NoticeKind",
    "RequestState",
    "StudyClient",
    "StudyResult",
    "StudySession",
    "extract_delta",
    "parse_line",
]
