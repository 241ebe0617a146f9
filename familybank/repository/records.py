"""Firestore implementation of the record repository."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Optional, TypeVar, Union

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from familybank.core import constants as c
from familybank.errors import RepositoryError
from familybank.errors import RepositoryErrorKind as Kind

from .models import Activity, Family, ProfileWithFamily, SavingsEntry, UserProfile

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

Record = Union[UserProfile, Family, Activity, SavingsEntry]
R = TypeVar("R", UserProfile, Family, Activity, SavingsEntry)

MISSING_RECORD_TYPE_MESSAGE = "did not find record type"


@dataclass(frozen=True)
class Predicate:
    """A single query condition understood by the repository."""

    field: str
    op: str
    value: Any
    collection: Optional[str] = None

    def to_filter(self, db: Client) -> Any:
        value = self.value
        if self.collection is not None:
            value = db.collection(self.collection).document(self.value)
        return firestore.FieldFilter(self.field, self.op, value)


def field_equals(field: str, value: Any) -> Predicate:
    """Match records whose scalar field equals ``value``."""
    return Predicate(field, "==", value)


def reference_equals(field: str, collection: str, record_id: str) -> Predicate:
    """Match records whose reference field points at ``collection/record_id``."""
    return Predicate(field, "==", record_id, collection)


def reference_contained_in(field: str, collection: str, record_id: str) -> Predicate:
    """Match records whose list of references contains ``collection/record_id``."""
    return Predicate(field, "array_contains", record_id, collection)


def is_missing_collection(error: Exception) -> bool:
    """Return True if ``error`` only means that no record of a kind exists yet.

    The category of the error is checked first, then its message, so that
    connectivity and permission problems are never mistaken for an empty kind.
    """
    message = str(error).lower()
    if MISSING_RECORD_TYPE_MESSAGE in message:
        return True
    if isinstance(error, google_exceptions.NotFound):
        # A missing database is a configuration problem, not an empty kind.
        return "database" not in message
    if isinstance(
        error, (google_exceptions.InvalidArgument, google_exceptions.FailedPrecondition)
    ):
        names_kind = "record type" in message or "collection" in message
        says_absent = "not found" in message or "does not exist" in message
        return names_kind and says_absent
    return False


class RecordRepository:
    """Create, read and query the four record kinds.

    Every call is one independent remote operation. There are no transactions
    and no batched writes.
    """

    def __init__(self, db: Client) -> None:
        """Initialize the repository with a Firestore client."""
        self.db = db

    # Generic operations

    def create(self, record: R, error_kind: Kind) -> R:
        """Write a new record and return it as stored."""
        try:
            _, ref = self.db.collection(record.COLLECTION).add(
                record.to_document(self.db)
            )
            snapshot = ref.get()
        except Exception as e:
            raise RepositoryError(error_kind, e) from e
        if not snapshot.exists:
            raise RepositoryError(Kind.UNEXPECTED_NIL_RECORD)
        return type(record).from_snapshot(snapshot)

    def update(self, record: R, error_kind: Kind) -> R:
        """Overwrite a record with its current field values."""
        ref = self.db.collection(record.COLLECTION).document(record.id)
        try:
            ref.set(record.to_document(self.db))
            snapshot = ref.get()
        except Exception as e:
            raise RepositoryError(error_kind, e) from e
        if not snapshot.exists:
            raise RepositoryError(Kind.UNEXPECTED_NIL_RECORD)
        return type(record).from_snapshot(snapshot)

    def delete(self, record: Record, error_kind: Kind) -> None:
        try:
            self.db.collection(record.COLLECTION).document(record.id).delete()
        except Exception as e:
            raise RepositoryError(error_kind, e) from e

    def get(self, kind: type[R], record_id: str, error_kind: Kind) -> Optional[R]:
        """Fetch a record by id, or None if it does not exist."""
        try:
            snapshot = self.db.collection(kind.COLLECTION).document(record_id).get()
        except Exception as e:
            if is_missing_collection(e):
                return None
            raise RepositoryError(error_kind, e) from e
        if not snapshot.exists:
            return None
        return kind.from_snapshot(snapshot)

    def find_many(
        self, kind: type[R], *predicates: Predicate, error_kind: Kind
    ) -> list[R]:
        """Return every record matching all predicates.

        A kind with no records at all yields an empty list, never an error.
        """
        query: Any = self.db.collection(kind.COLLECTION)
        for predicate in predicates:
            query = query.where(filter=predicate.to_filter(self.db))
        try:
            snapshots = list(query.stream())
        except Exception as e:
            if is_missing_collection(e):
                logger.info(f"No {kind.__name__} records exist yet: {e}")
                return []
            raise RepositoryError(error_kind, e) from e
        return [kind.from_snapshot(snapshot) for snapshot in snapshots]

    def find_one(
        self, kind: type[R], *predicates: Predicate, error_kind: Kind
    ) -> Optional[R]:
        """Return the first match by document id, or None.

        Uniqueness is not enforced by the store, so duplicates resolve to the
        lowest id to keep repeated lookups stable.
        """
        matches = self.find_many(kind, *predicates, error_kind=error_kind)
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(
                f"{len(matches)} {kind.__name__} records match {predicates}; "
                "using the lowest id."
            )
        return min(matches, key=lambda record: record.id)

    def check_available(self) -> None:
        """Make one minimal read to confirm the database answers."""
        try:
            list(self.db.collection(c.FAMILIES).limit(1).stream())
        except Exception as e:
            if is_missing_collection(e):
                return
            raise RepositoryError(Kind.BACKEND_UNAVAILABLE, e) from e

    # User profiles

    def create_user_profile(
        self,
        name: str,
        email: str,
        apple_user_identifier: str,
        family_id: Optional[str] = None,
    ) -> UserProfile:
        profile = UserProfile(
            id="",
            name=name,
            email=email,
            apple_user_identifier=apple_user_identifier,
            family_id=family_id,
        )
        return self.create(profile, Kind.FAILED_TO_CREATE_USER_PROFILE)

    def find_user_profile(self, apple_user_identifier: str) -> Optional[UserProfile]:
        """Find the profile linked to a stable identity."""
        return self.find_one(
            UserProfile,
            field_equals(c.PROFILE_APPLE_USER_IDENTIFIER, apple_user_identifier),
            error_kind=Kind.FAILED_TO_FIND_USER_PROFILE,
        )

    def get_user_profile(self, profile_id: str) -> Optional[UserProfile]:
        return self.get(UserProfile, profile_id, Kind.FAILED_TO_FIND_USER_PROFILE)

    def update_user_profile(
        self, profile: UserProfile, profile_image_url: Optional[str] = None
    ) -> UserProfile:
        """Overwrite a profile, optionally replacing its picture URL."""
        if profile_image_url is not None:
            profile = replace(profile, profile_image_url=profile_image_url)
        return self.update(profile, Kind.FAILED_TO_UPDATE_USER_PROFILE)

    def delete_user_profile(self, profile: UserProfile) -> None:
        self.delete(profile, Kind.FAILED_TO_DELETE_USER_PROFILE)

    def list_family_members(self, family: Family) -> list[UserProfile]:
        return self.find_many(
            UserProfile,
            reference_equals(c.PROFILE_FAMILY_REFERENCE, c.FAMILIES, family.id),
            error_kind=Kind.FAILED_TO_FETCH_FAMILY_MEMBERS,
        )

    # Families

    def create_family(self, invite_code: str, creator: UserProfile) -> Family:
        family = Family(id="", invite_code=invite_code, creator_id=creator.id)
        return self.create(family, Kind.FAILED_TO_CREATE_FAMILY)

    def get_family(self, family_id: str) -> Optional[Family]:
        return self.get(Family, family_id, Kind.FAILED_TO_FIND_FAMILY)

    def find_family_by_invite_code(self, invite_code: str) -> Optional[Family]:
        return self.find_one(
            Family,
            field_equals(c.FAMILY_INVITE_CODE, invite_code),
            error_kind=Kind.FAILED_TO_FIND_FAMILY,
        )

    def find_family_by_creator(self, creator: UserProfile) -> Optional[Family]:
        return self.find_one(
            Family,
            reference_equals(c.FAMILY_CREATOR_REFERENCE, c.USER_PROFILES, creator.id),
            error_kind=Kind.FAILED_TO_FIND_FAMILY,
        )

    def get_user_profile_with_family(
        self, apple_user_identifier: str
    ) -> Optional[ProfileWithFamily]:
        """Load a profile and its family, by membership first, then by creation."""
        profile = self.find_user_profile(apple_user_identifier)
        if profile is None:
            return None

        if profile.family_id:
            family = self.get_family(profile.family_id)
            if family is None:
                return None
            return ProfileWithFamily(profile, family, is_creator=False)

        family = self.find_family_by_creator(profile)
        if family is None:
            return None
        return ProfileWithFamily(profile, family, is_creator=True)

    # Activities

    def create_activity(self, activity: Activity) -> Activity:
        return self.create(activity, Kind.FAILED_TO_CREATE_ACTIVITY)

    def update_activity(self, activity: Activity) -> Activity:
        return self.update(activity, Kind.FAILED_TO_UPDATE_ACTIVITY)

    def get_activity(self, activity_id: str) -> Optional[Activity]:
        return self.get(Activity, activity_id, Kind.FAILED_TO_FIND_ACTIVITY)

    def list_activities_for_family(self, family: Family) -> list[Activity]:
        return self.find_many(
            Activity,
            reference_equals(c.ACTIVITY_FAMILY_REFERENCE, c.FAMILIES, family.id),
            error_kind=Kind.FAILED_TO_FETCH_ACTIVITIES,
        )

    def list_activities_for_user(self, profile: UserProfile) -> list[Activity]:
        return self.find_many(
            Activity,
            reference_contained_in(c.ACTIVITY_ASSIGNED_TO, c.USER_PROFILES, profile.id),
            error_kind=Kind.FAILED_TO_FETCH_ACTIVITIES,
        )

    # Savings entries

    def create_savings_entry(self, entry: SavingsEntry) -> SavingsEntry:
        return self.create(entry, Kind.FAILED_TO_CREATE_SAVINGS_ENTRY)

    def list_savings_for_activity(self, activity: Activity) -> list[SavingsEntry]:
        return self.find_many(
            SavingsEntry,
            reference_equals(c.SAVINGS_ACTIVITY_REFERENCE, c.ACTIVITIES, activity.id),
            error_kind=Kind.FAILED_TO_FETCH_SAVINGS_ENTRIES,
        )

    def list_savings_for_user(
        self, profile: UserProfile, activity: Activity
    ) -> list[SavingsEntry]:
        return self.find_many(
            SavingsEntry,
            reference_equals(c.SAVINGS_USER_REFERENCE, c.USER_PROFILES, profile.id),
            reference_equals(c.SAVINGS_ACTIVITY_REFERENCE, c.ACTIVITIES, activity.id),
            error_kind=Kind.FAILED_TO_FETCH_SAVINGS_ENTRIES,
        )
