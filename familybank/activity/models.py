"""Data models for the activity blueprint."""

from __future__ import annotations

import datetime
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Optional

from familybank.errors import ValidationError
from familybank.repository.models import Activity, SavingsEntry


@dataclass(frozen=True)
class ActivityProgress:
    """Savings totals for one activity, for a whole family or a single member."""

    activity: Activity
    entries: tuple[SavingsEntry, ...] = ()

    @classmethod
    def of(cls, activity: Activity, entries: Iterable[SavingsEntry]) -> ActivityProgress:
        return cls(activity, tuple(entries))

    @property
    def total_saved(self) -> float:
        return sum(entry.amount_saved for entry in self.entries)

    @property
    def progress(self) -> float:
        """Fraction of the goal reached, clamped to [0, 1]."""
        if self.activity.money_goal <= 0:
            return 0.0
        return min(max(self.total_saved / self.activity.money_goal, 0.0), 1.0)

    @property
    def is_completed(self) -> bool:
        return self.progress >= 1.0

    @property
    def amount_remaining(self) -> float:
        return max(self.activity.money_goal - self.total_saved, 0.0)

    def to_json(self, include_entries: bool = False) -> dict[str, Any]:
        data = self.activity.to_json()
        data.update(
            {
                "totalSaved": self.total_saved,
                "progress": self.progress,
                "isCompleted": self.is_completed,
                "amountRemaining": self.amount_remaining,
            }
        )
        if include_entries:
            ordered = sorted(self.entries, key=lambda e: e.date_logged, reverse=True)
            data["savings"] = [entry.to_json() for entry in ordered]
        return data


@dataclass
class ActivityDraft:
    """An activity as submitted by a family creator, before it is stored."""

    title: str
    money_goal: Optional[float]
    end_date: Optional[datetime.datetime]
    assigned_to: list[str] = field(default_factory=list)
    picture_url: Optional[str] = None

    def validate(
        self,
        member_ids: Iterable[str],
        now: Optional[datetime.datetime] = None,
    ) -> None:
        """Raise ValidationError for the first problem found."""
        now = now or datetime.datetime.now(datetime.timezone.utc)
        if not (self.title or "").strip():
            raise ValidationError("Please enter an activity title")
        if self.money_goal is None or self.money_goal <= 0:
            raise ValidationError("Please enter a valid money goal")
        if self.end_date is None or _aware(self.end_date) <= _aware(now):
            raise ValidationError("Please select a future end date")
        if not self.assigned_to:
            raise ValidationError(
                "Please select at least one family member to assign this activity to"
            )
        outsiders = set(self.assigned_to) - set(member_ids)
        if outsiders:
            raise ValidationError("Activities can only be assigned to family members")

    def to_activity(self, family_id: str) -> Activity:
        return Activity(
            id="",
            title=self.title.strip(),
            money_goal=float(self.money_goal),
            end_date=self.end_date,
            family_id=family_id,
            # Keep the submitted order, without repeats.
            assigned_to=list(dict.fromkeys(self.assigned_to)),
            picture_url=self.picture_url or None,
        )


@dataclass
class SavingsDraft:
    """A savings amount a member wants to log."""

    amount_saved: Optional[float]
    notes: str = ""

    def validate(self) -> None:
        if self.amount_saved is None or self.amount_saved <= 0:
            raise ValidationError("Please enter a valid amount")

    def to_entry(
        self, activity_id: str, user_id: str, now: Optional[datetime.datetime] = None
    ) -> SavingsEntry:
        return SavingsEntry(
            id="",
            amount_saved=float(self.amount_saved),
            date_logged=now or datetime.datetime.now(datetime.timezone.utc),
            activity_id=activity_id,
            user_id=user_id,
            notes=(self.notes or "").strip(),
        )


def _aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value
