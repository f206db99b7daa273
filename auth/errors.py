"""
auth/errors.py -- Typed failures raised by the auth layer.

Every failure the service can surface is an AuthError subclass carrying a
stable machine-readable code and a human-readable message. The API layer maps
each class to an HTTP status in one place (api/main.py).

AuthenticationFailed deliberately has a single fixed message: "unknown email"
and "wrong password" both become this one class, so nothing in the error a
caller receives can reveal whether an account exists. The internal cause is
logged by the service, never attached to the exception.

IdentityExists is the store adapter's conflict signal. It never leaves the
auth layer -- the service translates it into EmailAlreadyRegistered or
UserIdAlreadyRegistered.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all auth-layer failures."""

    code: str = "auth_error"
    default_message: str = "Authentication error."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(AuthError):
    code = "invalid_input"
    default_message = "Invalid input."


class EmailAlreadyRegistered(AuthError):
    code = "email_taken"
    default_message = "An account with that email already exists."


class UserIdAlreadyRegistered(AuthError):
    code = "user_id_taken"
    default_message = "An account with that user id already exists."


class AuthenticationFailed(AuthError):
    code = "bad_credentials"
    default_message = "Invalid email or password."

    def __init__(self) -> None:
        # No message override: the text must be identical for every cause.
        super().__init__()


class TokenInvalid(AuthError):
    code = "token_invalid"
    default_message = "Session token is invalid."


class TokenExpired(AuthError):
    code = "token_expired"
    default_message = "Session token has expired."


class StorageUnavailable(AuthError):
    code = "storage_unavailable"
    default_message = "Identity storage is unavailable."


class IdentityExists(Exception):
    """Raised by IdentityStore.insert when a unique column collides.

    field is "email" or "user_id".
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"identity with this {field} already exists")
