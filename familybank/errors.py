"""Custom exception classes for the application."""

from __future__ import annotations

from enum import Enum


class AppError(Exception):
    """Base application error class."""

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    def __init__(self, message="Validation failed."):
        """Initialize the error."""
        super().__init__(message, 400)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    def __init__(self, message="Resource not found."):
        """Initialize the error."""
        super().__init__(message, 404)


class AuthenticationRequired(AppError):
    """Raised when a request needs a signed-in session."""

    def __init__(self, message="You need to sign in first."):
        """Initialize the error."""
        super().__init__(message, 401)


class AccessDenied(AppError):
    """Raised when the signed-in role may not perform an action."""

    def __init__(self, message="You are not allowed to do that."):
        """Initialize the error."""
        super().__init__(message, 403)


class AuthErrorKind(str, Enum):
    """Failure tags reported by an identity provider."""

    CANCELLED = "cancelled"
    INVALID_CREDENTIALS = "invalid_credentials"
    AUTHORIZATION_FAILED = "authorization_failed"
    NO_STORED_CREDENTIALS = "no_stored_credentials"
    CREDENTIALS_REVOKED = "credentials_revoked"
    UNKNOWN_CREDENTIAL_STATE = "unknown_credential_state"


_AUTH_MESSAGES = {
    AuthErrorKind.CANCELLED: "Sign in was cancelled.",
    AuthErrorKind.INVALID_CREDENTIALS: "Invalid credentials received from sign in.",
    AuthErrorKind.AUTHORIZATION_FAILED: "Sign in failed.",
    AuthErrorKind.NO_STORED_CREDENTIALS: "No stored credentials were found.",
    AuthErrorKind.CREDENTIALS_REVOKED: "Your credentials have been revoked.",
    AuthErrorKind.UNKNOWN_CREDENTIAL_STATE: "Could not determine credential state.",
}


class AuthError(AppError):
    """Raised when the identity provider cannot produce a signed-in identity."""

    def __init__(self, kind: AuthErrorKind, cause: Exception | None = None):
        """Initialize the error."""
        message = _AUTH_MESSAGES[kind]
        if cause is not None:
            message = f"{message} {cause}"
        super().__init__(message, 401)
        self.kind = kind
        self.cause = cause


class RepositoryErrorKind(str, Enum):
    """Per-operation failure tags for the record repository."""

    FAILED_TO_CREATE_FAMILY = "failed_to_create_family"
    FAILED_TO_FIND_FAMILY = "failed_to_find_family"
    FAILED_TO_CREATE_USER_PROFILE = "failed_to_create_user_profile"
    FAILED_TO_FIND_USER_PROFILE = "failed_to_find_user_profile"
    FAILED_TO_UPDATE_USER_PROFILE = "failed_to_update_user_profile"
    FAILED_TO_DELETE_USER_PROFILE = "failed_to_delete_user_profile"
    FAILED_TO_CREATE_ACTIVITY = "failed_to_create_activity"
    FAILED_TO_FIND_ACTIVITY = "failed_to_find_activity"
    FAILED_TO_FETCH_ACTIVITIES = "failed_to_fetch_activities"
    FAILED_TO_UPDATE_ACTIVITY = "failed_to_update_activity"
    FAILED_TO_CREATE_SAVINGS_ENTRY = "failed_to_create_savings_entry"
    FAILED_TO_FETCH_SAVINGS_ENTRIES = "failed_to_fetch_savings_entries"
    FAILED_TO_FETCH_FAMILY_MEMBERS = "failed_to_fetch_family_members"
    UNEXPECTED_NIL_RECORD = "unexpected_nil_record"
    BACKEND_UNAVAILABLE = "backend_unavailable"


_REPOSITORY_MESSAGES = {
    RepositoryErrorKind.FAILED_TO_CREATE_FAMILY: "Failed to create family",
    RepositoryErrorKind.FAILED_TO_FIND_FAMILY: "Failed to find family",
    RepositoryErrorKind.FAILED_TO_CREATE_USER_PROFILE: "Failed to create user profile",
    RepositoryErrorKind.FAILED_TO_FIND_USER_PROFILE: "Failed to find user profile",
    RepositoryErrorKind.FAILED_TO_UPDATE_USER_PROFILE: "Failed to update user profile",
    RepositoryErrorKind.FAILED_TO_DELETE_USER_PROFILE: "Failed to delete user profile",
    RepositoryErrorKind.FAILED_TO_CREATE_ACTIVITY: "Failed to create activity",
    RepositoryErrorKind.FAILED_TO_FIND_ACTIVITY: "Failed to find activity",
    RepositoryErrorKind.FAILED_TO_FETCH_ACTIVITIES: "Failed to fetch activities",
    RepositoryErrorKind.FAILED_TO_UPDATE_ACTIVITY: "Failed to update activity",
    RepositoryErrorKind.FAILED_TO_CREATE_SAVINGS_ENTRY: "Failed to create savings entry",
    RepositoryErrorKind.FAILED_TO_FETCH_SAVINGS_ENTRIES: (
        "Failed to fetch savings entries"
    ),
    RepositoryErrorKind.FAILED_TO_FETCH_FAMILY_MEMBERS: "Failed to fetch family members",
    RepositoryErrorKind.UNEXPECTED_NIL_RECORD: (
        "Unexpected empty record returned from the database"
    ),
    RepositoryErrorKind.BACKEND_UNAVAILABLE: "The database is not available",
}


class RepositoryError(AppError):
    """Raised when a remote database operation fails."""

    def __init__(self, kind: RepositoryErrorKind, cause: Exception | None = None):
        """Initialize the error."""
        message = _REPOSITORY_MESSAGES[kind]
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, 502)
        self.kind = kind
        self.cause = cause


class RecordDecodeError(AppError):
    """Raised when a stored document is missing a required field."""

    def __init__(self, kind: str, record_id: str, field: str, reason: str = "missing"):
        """Initialize the error."""
        super().__init__(f"{kind} {record_id}: field '{field}' is {reason}.", 500)
        self.kind = kind
        self.record_id = record_id
        self.field = field
