"""Local single-slot storage for the signed-in stable identity.

Every store keeps exactly one value: the most recently signed-in identity.
Failures are logged and never raised, because losing this cache only means
the user signs in again.
"""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import MutableMapping
from typing import Any, Optional, Protocol

from familybank.core.constants import SESSION_IDENTITY_KEY

logger = logging.getLogger(__name__)


class SecureIdentityStore(Protocol):
    """Contract shared by all identity stores."""

    def save(self, stable_id: str) -> None: ...

    def load(self) -> Optional[str]: ...

    def delete(self) -> None: ...


class MemoryIdentityStore:
    """Keeps the identity in process memory."""

    def __init__(self, stable_id: Optional[str] = None) -> None:
        self._value = stable_id

    def save(self, stable_id: str) -> None:
        self._value = stable_id

    def load(self) -> Optional[str]:
        return self._value

    def delete(self) -> None:
        self._value = None


class SessionIdentityStore:
    """Keeps the identity in the signed Flask session cookie held by the client."""

    def __init__(
        self, session: MutableMapping[str, Any], key: str = SESSION_IDENTITY_KEY
    ) -> None:
        self.session = session
        self.key = key

    def save(self, stable_id: str) -> None:
        self.session[self.key] = stable_id
        if hasattr(self.session, "permanent"):
            self.session.permanent = True

    def load(self) -> Optional[str]:
        value = self.session.get(self.key)
        return value if isinstance(value, str) and value else None

    def delete(self) -> None:
        self.session.pop(self.key, None)


class FileIdentityStore:
    """Keeps the identity in a single file readable only by its owner."""

    def __init__(self, path: str) -> None:
        self.path = path

    def save(self, stable_id: str) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".identity-")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    os.chmod(tmp_path, 0o600)
                    f.write(stable_id)
                os.replace(tmp_path, self.path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Could not save identity to {self.path}: {e}")

    def load(self) -> Optional[str]:
        try:
            with open(self.path, encoding="utf-8") as f:
                value = f.read().strip()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Could not read identity from {self.path}: {e}")
            return None
        return value or None

    def delete(self) -> None:
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Could not delete identity at {self.path}: {e}")


def identity_store_for(
    name: str, session: MutableMapping[str, Any], path: Optional[str] = None
) -> SecureIdentityStore:
    """Build the store named by the ``IDENTITY_STORE`` setting.

    ``file`` suits a single-user device where one identity survives restarts.
    Every other deployment keeps the identity in the caller's session cookie.
    """
    if name == "file":
        if path:
            return FileIdentityStore(path)
        logger.warning("IDENTITY_STORE is 'file' but no path is set; using session.")
    elif name != "session":
        logger.warning(f"Unknown identity store {name!r}; using session.")
    return SessionIdentityStore(session)
