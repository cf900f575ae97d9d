"""Session module - per-user conversation state with expiry."""

from cchub.sessions.models import (
    BillerInfo,
    FlowFamily,
    FlowState,
    InputKind,
    MeterAccount,
    Session,
    SessionFields,
)
from cchub.sessions.manager import SessionConflictError, SessionManager

__all__ = [
    "BillerInfo",
    "FlowFamily",
    "FlowState",
    "InputKind",
    "MeterAccount",
    "Session",
    "SessionFields",
    "SessionConflictError",
    "SessionManager",
]
