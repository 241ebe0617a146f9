"""Invite code generation."""

import secrets

from familybank.core.constants import INVITE_CODE_DIGITS, INVITE_CODE_LETTERS


def generate_invite_code():
    """Return a random code such as ``ABC-123``. Codes are not checked for reuse."""
    letters = "".join(secrets.choice(INVITE_CODE_LETTERS) for _ in range(3))
    digits = "".join(secrets.choice(INVITE_CODE_DIGITS) for _ in range(3))
    return f"{letters}-{digits}"
