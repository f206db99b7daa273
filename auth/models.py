"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the service
do the work; these classes only own the shape of the data.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Identity:
    """One registered user as persisted in the users table.

    user_id is supplied by the caller at registration and is the primary key.
    email is globally unique and is the login key. password_hash is the bcrypt
    output (salt embedded) -- the plaintext password is never stored.

    about_me, joined, and is_active are bookkeeping columns carried through
    unchanged. The store stamps joined on insert when it is left empty.
    """

    user_id: str
    name: str
    email: str
    password_hash: str
    about_me: str | None = None
    joined: str | None = None
    is_active: bool = True

    def public(self) -> PublicIdentity:
        return PublicIdentity(user_id=self.user_id, name=self.name, email=self.email)


@dataclass(frozen=True)
class PublicIdentity:
    """The fields of an Identity that may cross the service boundary."""

    user_id: str
    name: str
    email: str


@dataclass(frozen=True)
class Claims:
    """Decoded, verified session token content."""

    user_id: str
    name: str
    email: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class AuthConfig:
    """Explicit configuration for AuthService.

    Built from core.config.Settings by the application, or directly in tests
    with an injected secret and a cheap bcrypt cost.
    """

    secret_key: str
    token_expire_seconds: int = 3600
    bcrypt_rounds: int = 12
    algorithm: str = "HS256"
