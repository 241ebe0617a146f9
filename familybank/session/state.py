"""Session state, outcomes, and change notification."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from familybank.errors import AppError
from familybank.repository.models import Family, UserProfile


class SessionStatus(str, Enum):
    """States of a session and results of a resolution."""

    UNAUTHENTICATED = "unauthenticated"
    RESTORING = "restoring"
    RESOLVING = "resolving"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"
    FAILED = "failed"


class Role(str, Enum):
    """What a signed-in profile may act as."""

    CREATOR = "creator"
    MEMBER = "member"


class Flow(str, Enum):
    """The sign-in flow a user picked on the onboarding screen."""

    CREATE_FAMILY = "create_family"
    JOIN_FAMILY = "join_family"


class RejectionReason(str, Enum):
    """Business-rule reasons for refusing a sign-in."""

    MISSING_INVITE_CODE = "missing_invite_code"
    INVALID_INVITE_CODE = "invalid_invite_code"
    ALREADY_CREATOR = "already_creator"
    MEMBER_OF_OTHER_FAMILY = "member_of_other_family"
    ALREADY_MEMBER = "already_member"
    INCONSISTENT_ACCOUNT = "inconsistent_account"

    @property
    def message(self) -> str:
        return REJECTION_MESSAGES[self]


REJECTION_MESSAGES = {
    RejectionReason.MISSING_INVITE_CODE: "Please enter an invite code.",
    RejectionReason.INVALID_INVITE_CODE: (
        "Invalid invite code. Please check and try again."
    ),
    RejectionReason.ALREADY_CREATOR: (
        "You are already a family creator. "
        "You cannot join another family as a member."
    ),
    RejectionReason.MEMBER_OF_OTHER_FAMILY: (
        "You are already a member of another family. "
        "You cannot join multiple families."
    ),
    RejectionReason.ALREADY_MEMBER: (
        "You are already a member of a family. You cannot create a new family."
    ),
    RejectionReason.INCONSISTENT_ACCOUNT: "Your account is in an inconsistent state.",
}


@dataclass(frozen=True)
class SessionOutcome:
    """The tagged result of restore, resolve, or sign-out.

    ``silent`` marks an unauthenticated result that must not be shown to the
    user, such as a fresh install with nothing to restore.
    """

    status: SessionStatus
    role: Optional[Role] = None
    profile: Optional[UserProfile] = None
    family: Optional[Family] = None
    rejection: Optional[RejectionReason] = None
    error: Optional[AppError] = None
    silent: bool = False

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def message(self) -> Optional[str]:
        """The text a client should display, if any."""
        if self.rejection is not None:
            return self.rejection.message
        if self.error is not None:
            return self.error.message
        return None

    @classmethod
    def authenticated(
        cls, profile: UserProfile, family: Family, role: Role
    ) -> SessionOutcome:
        return cls(SessionStatus.AUTHENTICATED, role=role, profile=profile, family=family)

    @classmethod
    def unauthenticated(cls, error: Optional[AppError] = None) -> SessionOutcome:
        return cls(SessionStatus.UNAUTHENTICATED, error=error, silent=error is None)

    @classmethod
    def rejected(cls, reason: RejectionReason) -> SessionOutcome:
        return cls(SessionStatus.REJECTED, rejection=reason)

    @classmethod
    def failed(cls, error: AppError) -> SessionOutcome:
        return cls(SessionStatus.FAILED, error=error)

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value}
        if self.role is not None:
            data["role"] = self.role.value
        if self.profile is not None:
            data["user"] = self.profile.to_json()
        if self.family is not None:
            data["family"] = self.family.to_json()
        if self.rejection is not None:
            data["reason"] = self.rejection.value
        if self.message and not self.silent:
            data["message"] = self.message
        return data


Listener = Callable[["SessionContext", SessionOutcome], None]


@dataclass
class SessionContext:
    """The current session, owned by the caller and updated by the reconciler.

    Subscribers are called after every finished operation with the context and
    the outcome that produced it.
    """

    status: SessionStatus = SessionStatus.UNAUTHENTICATED
    role: Optional[Role] = None
    profile: Optional[UserProfile] = None
    family: Optional[Family] = None
    flow: Optional[Flow] = None
    _listeners: list[Listener] = field(default_factory=list, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener and return a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def begin(self, status: SessionStatus, flow: Optional[Flow] = None) -> SessionStatus:
        """Enter RESTORING or RESOLVING and return the status to fall back to."""
        previous = self.status
        self.status = status
        self.flow = flow
        return previous

    def settle(self, outcome: SessionOutcome, fallback: SessionStatus) -> SessionOutcome:
        """Apply a finished outcome and notify subscribers.

        Rejected and failed resolutions leave the session as it was before.
        """
        if outcome.is_authenticated:
            self.status = SessionStatus.AUTHENTICATED
            self.role = outcome.role
            self.profile = outcome.profile
            self.family = outcome.family
        elif outcome.status is SessionStatus.UNAUTHENTICATED:
            self.clear()
        else:
            self.status = fallback
        self.flow = None
        for listener in list(self._listeners):
            listener(self, outcome)
        return outcome

    def clear(self) -> None:
        self.status = SessionStatus.UNAUTHENTICATED
        self.role = None
        self.profile = None
        self.family = None
