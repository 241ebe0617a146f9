"""Role-exclusive account linking and silent session restoration."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Optional

from familybank.errors import AppError, RepositoryError
from familybank.identity import (
    IdentityProvider,
    OptimisticRestorationPolicy,
    RestorationPolicy,
    SecureIdentityStore,
    SignInResult,
)
from familybank.repository import Family, RecordRepository, UserProfile

from .invite_codes import generate_invite_code
from .state import (
    Flow,
    RejectionReason,
    Role,
    SessionContext,
    SessionOutcome,
    SessionStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 0.2


class SessionReconciler:
    """Decide who a signed-in identity is allowed to be.

    One identity is either the creator of exactly one family or a member of
    exactly one family, never both. ``resolve`` links a fresh sign-in to the
    stored records under that rule, and ``restore`` brings back the previous
    session from the identity store without prompting.

    The reconciler runs one flow at a time. Callers must not overlap calls
    on the same instance.
    """

    def __init__(
        self,
        repository: RecordRepository,
        store: SecureIdentityStore,
        provider: Optional[IdentityProvider] = None,
        context: Optional[SessionContext] = None,
        restoration_policy: Optional[RestorationPolicy] = None,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        invite_code_factory: Callable[[], str] = generate_invite_code,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.repository = repository
        self.store = store
        self.provider = provider
        self.context = context or SessionContext()
        self.restoration_policy = restoration_policy or OptimisticRestorationPolicy()
        self.retry_delay = retry_delay
        self.invite_code_factory = invite_code_factory
        self.sleep = sleep

    # Restore

    def restore(self) -> SessionOutcome:
        """Bring back the last session using only the stored identity."""
        stable_id = self.store.load()
        if not stable_id:
            return self.context.settle(
                SessionOutcome.unauthenticated(), SessionStatus.UNAUTHENTICATED
            )

        fallback = self.context.begin(SessionStatus.RESTORING)
        try:
            if not self.restoration_policy.is_valid(stable_id):
                logger.info("Stored identity is no longer valid; clearing it.")
                self.store.delete()
                return self.context.settle(SessionOutcome.unauthenticated(), fallback)
            found = self.repository.get_user_profile_with_family(stable_id)
        except AppError as e:
            logger.error(f"Could not restore session: {e.message}")
            return self.context.settle(SessionOutcome.unauthenticated(e), fallback)

        if found is None:
            logger.info("No profile or family for the stored identity; clearing it.")
            self.store.delete()
            return self.context.settle(SessionOutcome.unauthenticated(), fallback)

        role = Role.CREATOR if found.is_creator else Role.MEMBER
        outcome = SessionOutcome.authenticated(found.profile, found.family, role)
        return self.context.settle(outcome, fallback)

    # Resolve

    def resolve(self, flow: Flow, invite_code: Optional[str] = None) -> SessionOutcome:
        """Sign in and link the identity to a family under role exclusivity."""
        flow = Flow(flow)
        if self.provider is None:
            raise ValueError("resolve() needs an identity provider")

        fallback = self.context.begin(SessionStatus.RESOLVING, flow)
        try:
            outcome = self._resolve(flow, invite_code)
        except AppError as e:
            logger.error(f"Sign in failed for {flow.value}: {e.message}")
            outcome = SessionOutcome.failed(e)

        if outcome.is_authenticated:
            self._persist_identity(outcome.profile.apple_user_identifier)
        elif outcome.status is SessionStatus.REJECTED:
            logger.info(f"Sign in rejected for {flow.value}: {outcome.rejection.value}")
        return self.context.settle(outcome, fallback)

    def _resolve(self, flow: Flow, invite_code: Optional[str]) -> SessionOutcome:
        target_family = None
        if flow is Flow.JOIN_FAMILY:
            code = (invite_code or "").strip()
            if not code:
                return SessionOutcome.rejected(RejectionReason.MISSING_INVITE_CODE)
            target_family = self.repository.find_family_by_invite_code(code)
            if target_family is None:
                return SessionOutcome.rejected(RejectionReason.INVALID_INVITE_CODE)

        identity = self.provider.sign_in()

        profile = self.repository.find_user_profile(identity.stable_user_id)
        if profile is None:
            return self._create_account(flow, identity, target_family)
        return self._link_existing(flow, profile, target_family)

    def _create_account(
        self, flow: Flow, identity: SignInResult, target_family: Optional[Family]
    ) -> SessionOutcome:
        if flow is Flow.JOIN_FAMILY:
            profile = self.repository.create_user_profile(
                name=identity.full_name,
                email=identity.email,
                apple_user_identifier=identity.stable_user_id,
                family_id=target_family.id,
            )
            logger.info(f"Created member profile {profile.id} in family {target_family.id}")
            return SessionOutcome.authenticated(profile, target_family, Role.MEMBER)

        profile = self.repository.create_user_profile(
            name=identity.full_name,
            email=identity.email,
            apple_user_identifier=identity.stable_user_id,
        )
        try:
            family = self.repository.create_family(self.invite_code_factory(), profile)
        except RepositoryError as e:
            family = self._recover_family(profile, e)
            if family is None:
                raise
        logger.info(f"Created family {family.id} for creator {profile.id}")
        return SessionOutcome.authenticated(profile, family, Role.CREATOR)

    def _recover_family(
        self, profile: UserProfile, error: RepositoryError
    ) -> Optional[Family]:
        """Settle a failed family write, returning the family if it landed.

        A failed write may still have been applied, so the profile is only
        removed once no family points at it.
        """
        logger.warning(f"Family write for creator {profile.id} failed: {error.message}")
        try:
            family = self.repository.find_family_by_creator(profile)
        except RepositoryError as e:
            # Unknown outcome; the next sign-in finds the family or rejects.
            logger.error(f"Could not check for a family of {profile.id}: {e.message}")
            return None
        if family is not None:
            logger.info(f"Family {family.id} for creator {profile.id} was written")
            return family
        self._discard_orphan(profile)
        return None

    def _discard_orphan(self, profile: UserProfile) -> None:
        """Remove a profile whose family could not be created."""
        try:
            self.repository.delete_user_profile(profile)
        except RepositoryError as e:
            # The profile stays behind and will be rejected as inconsistent.
            logger.error(f"Could not remove orphaned profile {profile.id}: {e.message}")

    def _link_existing(
        self, flow: Flow, profile: UserProfile, target_family: Optional[Family]
    ) -> SessionOutcome:
        created_family = self.repository.find_family_by_creator(profile)
        if created_family is not None:
            if flow is Flow.JOIN_FAMILY:
                return SessionOutcome.rejected(RejectionReason.ALREADY_CREATOR)
            return SessionOutcome.authenticated(profile, created_family, Role.CREATOR)

        if profile.family_id:
            if flow is Flow.CREATE_FAMILY:
                return SessionOutcome.rejected(RejectionReason.ALREADY_MEMBER)
            if profile.family_id != target_family.id:
                return SessionOutcome.rejected(RejectionReason.MEMBER_OF_OTHER_FAMILY)
            return SessionOutcome.authenticated(profile, target_family, Role.MEMBER)

        logger.warning(f"Profile {profile.id} has neither a family nor a created family")
        return SessionOutcome.rejected(RejectionReason.INCONSISTENT_ACCOUNT)

    def _persist_identity(self, stable_id: str) -> None:
        """Save the identity, verify it, and retry once after a short delay."""
        self.store.save(stable_id)
        if self.store.load() == stable_id:
            return
        logger.warning("Identity store did not keep the identity; retrying once.")
        self.sleep(self.retry_delay)
        self.store.save(stable_id)
        if self.store.load() != stable_id:
            logger.error("Identity store failed to keep the identity after a retry.")

    # Sign out

    def sign_out(self) -> SessionOutcome:
        """Forget the stored identity and end the session."""
        self.store.delete()
        return self.context.settle(
            SessionOutcome.unauthenticated(), SessionStatus.UNAUTHENTICATED
        )
