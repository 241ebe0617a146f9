"""Record repository over the shared Firestore database."""

from firebase_admin import firestore
from flask import current_app, g

from .records import (
    Predicate,
    RecordRepository,
    field_equals,
    is_missing_collection,
    reference_contained_in,
    reference_equals,
)
from .models import Activity, Family, ProfileWithFamily, SavingsEntry, UserProfile


def get_repository() -> RecordRepository:
    """Return the repository for the current request.

    ``FIRESTORE_CLIENT`` in the app config overrides the default client.
    """
    if "repository" not in g:
        db = current_app.config.get("FIRESTORE_CLIENT") or firestore.client()
        g.repository = RecordRepository(db)
    return g.repository


__all__ = [
    "Activity",
    "Family",
    "Predicate",
    "ProfileWithFamily",
    "RecordRepository",
    "SavingsEntry",
    "UserProfile",
    "field_equals",
    "get_repository",
    "is_missing_collection",
    "reference_contained_in",
    "reference_equals",
]
