"""Sign-in through Firebase Authentication."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol

from firebase_admin import auth
from firebase_admin.auth import (
    InvalidIdTokenError,
    RevokedIdTokenError,
    UserDisabledError,
    UserNotFoundError,
)

from familybank.core.constants import UNKNOWN_USER_NAME
from familybank.errors import AuthError, AuthErrorKind

logger = logging.getLogger(__name__)

TokenSource = Callable[[], Optional[str]]


@dataclass(frozen=True)
class SignInResult:
    """The identity returned by a successful sign-in."""

    stable_user_id: str
    email: str = ""
    full_name: str = UNKNOWN_USER_NAME


class IdentityProvider(Protocol):
    """Anything that can run an interactive sign-in."""

    def sign_in(self) -> SignInResult:
        """Return the signed-in identity or raise AuthError."""
        ...


class FirebaseIdentityProvider:
    """Verify a Firebase ID token produced by the client's sign-in step.

    ``token_source`` performs the interactive part and returns the ID token,
    or None when the user cancelled. Email and name are only present on the
    first authorization of an account, so the hints sent by the client are
    used when the token carries no claims, and defaults fill any gap.
    """

    def __init__(
        self,
        token_source: TokenSource,
        full_name_hint: Optional[str] = None,
        email_hint: Optional[str] = None,
    ) -> None:
        self.token_source = token_source
        self.full_name_hint = full_name_hint
        self.email_hint = email_hint

    def sign_in(self) -> SignInResult:
        try:
            id_token = self.token_source()
        except Exception as e:
            raise AuthError(AuthErrorKind.AUTHORIZATION_FAILED, e) from e
        if not id_token:
            raise AuthError(AuthErrorKind.CANCELLED)

        try:
            decoded_token = auth.verify_id_token(id_token, check_revoked=True)
        except (RevokedIdTokenError, UserDisabledError) as e:
            raise AuthError(AuthErrorKind.CREDENTIALS_REVOKED, e) from e
        except InvalidIdTokenError as e:
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS, e) from e
        except Exception as e:
            logger.error(f"Error verifying ID token: {e}")
            raise AuthError(AuthErrorKind.AUTHORIZATION_FAILED, e) from e

        uid = decoded_token.get("uid")
        if not uid:
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        email = decoded_token.get("email") or self.email_hint or ""
        name = (decoded_token.get("name") or self.full_name_hint or "").strip()
        return SignInResult(
            stable_user_id=uid,
            email=email,
            full_name=name or UNKNOWN_USER_NAME,
        )


class RestorationPolicy(Protocol):
    """Decides whether a stored identity may be used without signing in again."""

    def is_valid(self, stable_id: str) -> bool: ...


class OptimisticRestorationPolicy:
    """Trust any stored identity.

    Credential-state checks give false negatives in sandboxed environments, so
    a stale identity is only dropped when a later lookup cannot find it.
    """

    def is_valid(self, stable_id: str) -> bool:
        return True


class RevalidatingRestorationPolicy:
    """Ask Firebase whether the stored account still exists and is enabled."""

    def is_valid(self, stable_id: str) -> bool:
        try:
            user = auth.get_user(stable_id)
        except UserNotFoundError:
            return False
        except Exception as e:
            raise AuthError(AuthErrorKind.UNKNOWN_CREDENTIAL_STATE, e) from e
        return not user.disabled


def restoration_policy_for(name: str) -> RestorationPolicy:
    """Build the policy named by the ``RESTORATION_POLICY`` setting."""
    if name == "revalidate":
        return RevalidatingRestorationPolicy()
    if name != "optimistic":
        logger.warning(f"Unknown restoration policy {name!r}; using optimistic.")
    return OptimisticRestorationPolicy()
