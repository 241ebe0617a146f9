"""Identity: the sign-in provider and the local identity cache."""

from .provider import (
    FirebaseIdentityProvider,
    IdentityProvider,
    OptimisticRestorationPolicy,
    RestorationPolicy,
    RevalidatingRestorationPolicy,
    SignInResult,
    restoration_policy_for,
)
from .store import (
    FileIdentityStore,
    MemoryIdentityStore,
    SecureIdentityStore,
    SessionIdentityStore,
    identity_store_for,
)

__all__ = [
    "FileIdentityStore",
    "FirebaseIdentityProvider",
    "IdentityProvider",
    "MemoryIdentityStore",
    "OptimisticRestorationPolicy",
    "RestorationPolicy",
    "RevalidatingRestorationPolicy",
    "SecureIdentityStore",
    "SessionIdentityStore",
    "SignInResult",
    "identity_store_for",
    "restoration_policy_for",
]
