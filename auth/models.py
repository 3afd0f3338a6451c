"""
auth/models.py -- Domain dataclass for the authenticated identity.

Pattern: Data class (pure data container, zero logic). Mirrors herd/models.py
-- dataclasses own domain shape; stores and routes do the work.

Layer rule: no imports from api/ or herd/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A HerdWatch account.

    email is the login identifier and is unique across the users table.
    hashed_password is a bcrypt hash; the plaintext is never stored.
    """

    email: str
    role: str  # "farmer", "veterinarian", "admin"
    hashed_password: str
    name: str | None = None
    id: int | None = None
    created_at: str | None = None
