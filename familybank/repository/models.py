"""Typed records stored in Firestore."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, NamedTuple, Optional

from firebase_admin import firestore

from familybank.core import constants as c
from familybank.errors import RecordDecodeError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client


def _snapshot_data(kind: str, snapshot: DocumentSnapshot) -> dict[str, Any]:
    data = snapshot.to_dict()
    if data is None:
        raise RecordDecodeError(kind, snapshot.id, "*", "empty")
    return data


def _required(data: dict[str, Any], kind: str, record_id: str, name: str) -> Any:
    value = data.get(name)
    if value is None:
        raise RecordDecodeError(kind, record_id, name)
    return value


def _required_str(data: dict[str, Any], kind: str, record_id: str, name: str) -> str:
    value = _required(data, kind, record_id, name)
    if not isinstance(value, str):
        raise RecordDecodeError(kind, record_id, name, "not a string")
    return value


def _required_number(
    data: dict[str, Any], kind: str, record_id: str, name: str
) -> float:
    value = _required(data, kind, record_id, name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise RecordDecodeError(kind, record_id, name, "not a number")
    return float(value)


def _required_datetime(
    data: dict[str, Any], kind: str, record_id: str, name: str
) -> datetime.datetime:
    value = _required(data, kind, record_id, name)
    if not isinstance(value, datetime.datetime):
        raise RecordDecodeError(kind, record_id, name, "not a timestamp")
    return value


def reference_id(value: Any) -> Optional[str]:
    """Return the document id a reference field points at."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    return getattr(value, "id", None)


def _required_reference(
    data: dict[str, Any], kind: str, record_id: str, name: str
) -> str:
    ref_id = reference_id(data.get(name))
    if ref_id is None:
        raise RecordDecodeError(kind, record_id, name)
    return ref_id


def _json_value(value: Any) -> Any:
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    return value


@dataclass
class UserProfile:
    """A person signed in through the identity provider."""

    COLLECTION: ClassVar[str] = c.USER_PROFILES

    id: str
    name: str
    email: str
    apple_user_identifier: str
    family_id: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: Any = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> UserProfile:
        """Decode a stored profile document."""
        kind = "UserProfile"
        data = _snapshot_data(kind, snapshot)
        return cls(
            id=snapshot.id,
            name=data.get(c.PROFILE_NAME) or "",
            email=data.get(c.PROFILE_EMAIL) or "",
            apple_user_identifier=_required_str(
                data, kind, snapshot.id, c.PROFILE_APPLE_USER_IDENTIFIER
            ),
            family_id=reference_id(data.get(c.PROFILE_FAMILY_REFERENCE)),
            profile_image_url=data.get(c.PROFILE_IMAGE_URL),
            created_at=data.get(c.CREATED_AT),
        )

    def to_document(self, db: Client) -> dict[str, Any]:
        """Encode the profile, turning the family id into a reference."""
        doc: dict[str, Any] = {
            c.PROFILE_NAME: self.name,
            c.PROFILE_EMAIL: self.email,
            c.PROFILE_APPLE_USER_IDENTIFIER: self.apple_user_identifier,
            c.CREATED_AT: self.created_at or firestore.SERVER_TIMESTAMP,
        }
        if self.family_id:
            doc[c.PROFILE_FAMILY_REFERENCE] = db.collection(c.FAMILIES).document(
                self.family_id
            )
        if self.profile_image_url:
            doc[c.PROFILE_IMAGE_URL] = self.profile_image_url
        return doc

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "familyId": self.family_id,
            "profileImageUrl": self.profile_image_url,
        }


@dataclass
class Family:
    """A family group, founded by exactly one creator."""

    COLLECTION: ClassVar[str] = c.FAMILIES

    id: str
    invite_code: str
    creator_id: Optional[str] = None
    created_at: Any = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Family:
        """Decode a stored family document."""
        kind = "Family"
        data = _snapshot_data(kind, snapshot)
        return cls(
            id=snapshot.id,
            invite_code=_required_str(data, kind, snapshot.id, c.FAMILY_INVITE_CODE),
            creator_id=reference_id(data.get(c.FAMILY_CREATOR_REFERENCE)),
            created_at=data.get(c.CREATED_AT),
        )

    def to_document(self, db: Client) -> dict[str, Any]:
        doc: dict[str, Any] = {
            c.FAMILY_INVITE_CODE: self.invite_code,
            c.CREATED_AT: self.created_at or firestore.SERVER_TIMESTAMP,
        }
        if self.creator_id:
            doc[c.FAMILY_CREATOR_REFERENCE] = db.collection(
                c.USER_PROFILES
            ).document(self.creator_id)
        return doc

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "inviteCode": self.invite_code,
            "creatorId": self.creator_id,
        }


@dataclass
class Activity:
    """A savings goal assigned to one or more family members."""

    COLLECTION: ClassVar[str] = c.ACTIVITIES

    id: str
    title: str
    money_goal: float
    end_date: datetime.datetime
    family_id: str
    assigned_to: list[str] = field(default_factory=list)
    picture_url: Optional[str] = None
    created_at: Any = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Activity:
        """Decode a stored activity document.

        A missing ``moneyGoal`` is reported as a decode error instead of being
        read as a zero goal.
        """
        kind = "Activity"
        data = _snapshot_data(kind, snapshot)
        assigned = data.get(c.ACTIVITY_ASSIGNED_TO) or []
        return cls(
            id=snapshot.id,
            title=_required_str(data, kind, snapshot.id, c.ACTIVITY_TITLE),
            money_goal=_required_number(data, kind, snapshot.id, c.ACTIVITY_MONEY_GOAL),
            end_date=_required_datetime(data, kind, snapshot.id, c.ACTIVITY_END_DATE),
            family_id=_required_reference(
                data, kind, snapshot.id, c.ACTIVITY_FAMILY_REFERENCE
            ),
            assigned_to=[ref_id for ref_id in map(reference_id, assigned) if ref_id],
            picture_url=data.get(c.ACTIVITY_PICTURE_URL),
            created_at=data.get(c.CREATED_AT),
        )

    def to_document(self, db: Client) -> dict[str, Any]:
        profiles = db.collection(c.USER_PROFILES)
        doc: dict[str, Any] = {
            c.ACTIVITY_TITLE: self.title,
            c.ACTIVITY_MONEY_GOAL: self.money_goal,
            c.ACTIVITY_END_DATE: self.end_date,
            c.ACTIVITY_FAMILY_REFERENCE: db.collection(c.FAMILIES).document(
                self.family_id
            ),
            c.ACTIVITY_ASSIGNED_TO: [profiles.document(uid) for uid in self.assigned_to],
            c.CREATED_AT: self.created_at or firestore.SERVER_TIMESTAMP,
        }
        if self.picture_url:
            doc[c.ACTIVITY_PICTURE_URL] = self.picture_url
        return doc

    def is_assigned_to(self, profile: UserProfile) -> bool:
        """Return True if the activity is assigned to the given profile."""
        return profile.id in self.assigned_to

    def days_remaining(self, now: Optional[datetime.datetime] = None) -> int:
        """Return whole days left until the end date, never negative."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return max(0, (_aware(self.end_date) - _aware(now)).days)

    def is_expired(self, now: Optional[datetime.datetime] = None) -> bool:
        now = now or datetime.datetime.now(datetime.timezone.utc)
        return _aware(now) > _aware(self.end_date)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "moneyGoal": self.money_goal,
            "endDate": _json_value(self.end_date),
            "familyId": self.family_id,
            "assignedTo": list(self.assigned_to),
            "pictureUrl": self.picture_url,
            "daysRemaining": self.days_remaining(),
            "isExpired": self.is_expired(),
        }


@dataclass
class SavingsEntry:
    """An amount a member saved towards an activity. Never changed once written."""

    COLLECTION: ClassVar[str] = c.SAVINGS_ENTRIES

    id: str
    amount_saved: float
    date_logged: datetime.datetime
    activity_id: str
    user_id: str
    notes: str = ""
    created_at: Any = None

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> SavingsEntry:
        kind = "SavingsEntry"
        data = _snapshot_data(kind, snapshot)
        return cls(
            id=snapshot.id,
            amount_saved=_required_number(data, kind, snapshot.id, c.SAVINGS_AMOUNT),
            date_logged=_required_datetime(
                data, kind, snapshot.id, c.SAVINGS_DATE_LOGGED
            ),
            activity_id=_required_reference(
                data, kind, snapshot.id, c.SAVINGS_ACTIVITY_REFERENCE
            ),
            user_id=_required_reference(
                data, kind, snapshot.id, c.SAVINGS_USER_REFERENCE
            ),
            notes=data.get(c.SAVINGS_NOTES) or "",
            created_at=data.get(c.CREATED_AT),
        )

    def to_document(self, db: Client) -> dict[str, Any]:
        return {
            c.SAVINGS_AMOUNT: self.amount_saved,
            c.SAVINGS_DATE_LOGGED: self.date_logged,
            c.SAVINGS_NOTES: self.notes,
            c.SAVINGS_ACTIVITY_REFERENCE: db.collection(c.ACTIVITIES).document(
                self.activity_id
            ),
            c.SAVINGS_USER_REFERENCE: db.collection(c.USER_PROFILES).document(
                self.user_id
            ),
            c.CREATED_AT: self.created_at or firestore.SERVER_TIMESTAMP,
        }

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "amountSaved": self.amount_saved,
            "dateLogged": _json_value(self.date_logged),
            "notes": self.notes,
            "activityId": self.activity_id,
            "userId": self.user_id,
        }


class ProfileWithFamily(NamedTuple):
    """A profile together with the family it belongs to or founded."""

    profile: UserProfile
    family: Family
    is_creator: bool


def _aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value
