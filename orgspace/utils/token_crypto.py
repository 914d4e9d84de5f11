"""
Invitation token utilities.

Responsibilities:
- Generate fixed-width invitation tokens (32 random bytes, hex encoded)
- Cheap shape check before hitting storage
- Derive a display prefix so full tokens never reach logs
"""
from __future__ import annotations

import secrets
import string


INVITATION_TOKEN_BYTES = 32
INVITATION_TOKEN_LENGTH = INVITATION_TOKEN_BYTES * 2
DISPLAY_PREFIX_LENGTH = 8

_HEX_DIGITS = frozenset(string.hexdigits.lower())


def generate_invitation_token() -> str:
    """Return a 64 character hex token from a CSPRNG.

    No uniqueness retry: a collision is left to the storage unique
    constraint on the token column.
    """
    return secrets.token_hex(INVITATION_TOKEN_BYTES)


def is_well_formed_token(token: str | None) -> bool:
    if not token or len(token) != INVITATION_TOKEN_LENGTH:
        return False
    return all(ch in _HEX_DIGITS for ch in token)


def token_display_prefix(token: str | None) -> str:
    """Return the first characters of a token for logs and UI."""
    if not token:
        return ""
    return token[:DISPLAY_PREFIX_LENGTH]
