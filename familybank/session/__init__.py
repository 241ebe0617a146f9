"""Session restoration and sign-in reconciliation."""

from .invite_codes import generate_invite_code
from .reconciler import SessionReconciler
from .state import (
    Flow,
    RejectionReason,
    Role,
    SessionContext,
    SessionOutcome,
    SessionStatus,
)

__all__ = [
    "Flow",
    "RejectionReason",
    "Role",
    "SessionContext",
    "SessionOutcome",
    "SessionReconciler",
    "SessionStatus",
    "generate_invite_code",
]
