"""Common utilities for tests."""

from typing import Any, Optional

from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

from familybank.identity import SignInResult
from familybank.errors import AuthError


def patch_mockfirestore() -> None:
    """Apply monkeypatches to mockfirestore to support FieldFilter and equality."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:  # noqa: E501
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    def doc_ref_eq(self: Any, other: Any) -> bool:
        if not isinstance(other, DocumentReference):
            return False
        return self._path == other._path

    if not hasattr(DocumentReference, "_orig_eq"):
        DocumentReference._orig_eq = DocumentReference.__eq__
        DocumentReference.__eq__ = doc_ref_eq
        DocumentReference.__hash__ = lambda self: hash(tuple(self._path))


def mock_db() -> MockFirestore:
    """Return an empty, patched in-memory Firestore."""
    patch_mockfirestore()
    return MockFirestore()


class FakeProvider:
    """Identity provider returning a fixed result, or raising a fixed error."""

    def __init__(
        self,
        stable_user_id: str = "apple-user-1",
        email: str = "parent@example.com",
        full_name: str = "Pat Parent",
        error: Optional[AuthError] = None,
    ) -> None:
        self.result = SignInResult(stable_user_id, email, full_name)
        self.error = error
        self.calls = 0

    def sign_in(self) -> SignInResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class FlakyStore:
    """Identity store that drops the first ``drops`` saves."""

    def __init__(self, drops: int = 1) -> None:
        self.drops = drops
        self.saves = 0
        self.value: Optional[str] = None

    def save(self, stable_id: str) -> None:
        self.saves += 1
        if self.saves > self.drops:
            self.value = stable_id

    def load(self) -> Optional[str]:
        return self.value

    def delete(self) -> None:
        self.value = None
