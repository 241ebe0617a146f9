"""Service layer for activities and savings."""

from __future__ import annotations

import datetime
import logging
from typing import Optional

from familybank.errors import AccessDenied, NotFoundError
from familybank.repository import (
    Activity,
    Family,
    RecordRepository,
    SavingsEntry,
    UserProfile,
)
from familybank.session import Role

from .models import ActivityDraft, ActivityProgress, SavingsDraft

logger = logging.getLogger(__name__)


class ActivityService:
    """Activity creation, savings logging and progress for one family."""

    def __init__(self, repository: RecordRepository) -> None:
        self.repository = repository

    def create_activity(
        self,
        family: Family,
        role: Role,
        draft: ActivityDraft,
        now: Optional[datetime.datetime] = None,
    ) -> Activity:
        """Store a new activity assigned to members of ``family``.

        Only the creator may do this, and every assignee must belong to the
        family. Validation runs before anything is written.
        """
        if role is not Role.CREATOR:
            raise AccessDenied("Only the family creator can create activities.")
        members = self.repository.list_family_members(family)
        draft.validate([member.id for member in members], now)
        activity = self.repository.create_activity(draft.to_activity(family.id))
        logger.info(
            f"Created activity {activity.id} in family {family.id} "
            f"for {len(activity.assigned_to)} member(s)"
        )
        return activity

    def get_activity(
        self, activity_id: str, profile: UserProfile, family: Family, role: Role
    ) -> Activity:
        """Load an activity the caller is allowed to see."""
        activity = self.repository.get_activity(activity_id)
        if activity is None or activity.family_id != family.id:
            raise NotFoundError("Activity not found.")
        if role is Role.MEMBER and not activity.is_assigned_to(profile):
            raise AccessDenied("This activity is not assigned to you.")
        return activity

    def log_savings(
        self,
        activity: Activity,
        profile: UserProfile,
        role: Role,
        draft: SavingsDraft,
        now: Optional[datetime.datetime] = None,
    ) -> SavingsEntry:
        if role is not Role.MEMBER or not activity.is_assigned_to(profile):
            raise AccessDenied("Only assigned family members can log savings.")
        draft.validate()
        entry = self.repository.create_savings_entry(
            draft.to_entry(activity.id, profile.id, now)
        )
        logger.info(f"Logged {entry.amount_saved} on activity {activity.id}")
        return entry

    def family_progress(self, family: Family) -> list[ActivityProgress]:
        """Progress of every activity in the family, soonest deadline first."""
        activities = self.repository.list_activities_for_family(family)
        return sorted(
            (
                ActivityProgress.of(
                    activity, self.repository.list_savings_for_activity(activity)
                )
                for activity in activities
            ),
            key=_by_end_date,
        )

    def member_progress(self, profile: UserProfile) -> list[ActivityProgress]:
        """Progress of the member's own savings on each assigned activity."""
        activities = self.repository.list_activities_for_user(profile)
        return sorted(
            (
                ActivityProgress.of(
                    activity, self.repository.list_savings_for_user(profile, activity)
                )
                for activity in activities
            ),
            key=_by_end_date,
        )

    def progress_for(
        self, activity: Activity, profile: UserProfile, role: Role
    ) -> ActivityProgress:
        """Creators see the whole family's savings, members only their own."""
        if role is Role.CREATOR:
            entries = self.repository.list_savings_for_activity(activity)
        else:
            entries = self.repository.list_savings_for_user(profile, activity)
        return ActivityProgress.of(activity, entries)


def _by_end_date(progress: ActivityProgress) -> datetime.datetime:
    end_date = progress.activity.end_date
    if end_date.tzinfo is None:
        return end_date.replace(tzinfo=datetime.timezone.utc)
    return end_date
