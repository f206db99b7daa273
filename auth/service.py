"""
auth/service.py -- Registration, login, and session token verification.

AuthService owns every cryptographic and policy decision; IdentityStore is a
pure data-access leaf. The service holds no mutable state of its own (store,
config, clock, and a dummy hash computed once at construction), so a single
instance is shared by all concurrent request handlers without locking.

Security design decisions:
  [C1] Login timing equalization. When the email is unknown, bcrypt still
       runs against _dummy_hash so response time does not reveal whether the
       account exists.

  [C2] Collapsed login failure. Unknown email, wrong password, and inactive
       account are logged with distinct reasons but all raise the same
       AuthenticationFailed, which has one fixed message and no fields.

  [C3] Registration race. find_by_email() is only a fast path. The store's
       UNIQUE constraint decides: if a concurrent request inserted the same
       email between our check and our INSERT, the store raises
       IdentityExists("email") and we raise the same EmailAlreadyRegistered.

Layer rule: no imports from api/ or core/. Configuration arrives as AuthConfig.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from auth.errors import (
    AuthenticationFailed,
    EmailAlreadyRegistered,
    IdentityExists,
    InvalidInput,
    TokenExpired,
    TokenInvalid,
    UserIdAlreadyRegistered,
)
from auth.models import AuthConfig, Claims, Identity, PublicIdentity
from auth.store import IdentityStore
from auth.tokens import BCRYPT_MAX_BYTES, decode_token, encode_token, hash_password, verify_password

logger = logging.getLogger("gatekeeper.auth")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _validate_email(email: str) -> None:
    if not email:
        raise InvalidInput("Email must not be empty.")
    if any(ch.isspace() for ch in email) or email.count("@") != 1:
        raise InvalidInput("Email is malformed.")
    local, domain = email.split("@")
    if not local or not domain:
        raise InvalidInput("Email is malformed.")


class AuthService:
    """Authentication service over an IdentityStore.

    Usage:
        service = AuthService(IdentityStore(url), AuthConfig(secret_key=key))
        service.register("u1", "Ada", "ada@example.com", "swordfish")
        token = service.login("ada@example.com", "swordfish")
        claims = service.verify_token(token)

    clock is injectable so token expiry can be tested at exact instants.
    """

    def __init__(
        self,
        store: IdentityStore,
        config: AuthConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.config = config
        self.clock = clock
        # Same cost as real hashes so the unknown-email path takes as long [C1].
        self._dummy_hash = hash_password(secrets.token_hex(16), rounds=config.bcrypt_rounds)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, user_id: str, name: str, email: str, password: str) -> PublicIdentity:
        """Create an identity and return its public fields.

        Raises InvalidInput, EmailAlreadyRegistered, UserIdAlreadyRegistered,
        or StorageUnavailable.
        """
        if not user_id or not user_id.strip():
            raise InvalidInput("User id must not be empty.")
        _validate_email(email)
        if not password:
            raise InvalidInput("Password must not be empty.")
        if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
            raise InvalidInput(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")

        if self.store.find_by_email(email) is not None:
            logger.info("Registration rejected: email already registered (%s)", email)
            raise EmailAlreadyRegistered()

        identity = Identity(
            user_id=user_id,
            name=name,
            email=email,
            password_hash=hash_password(password, rounds=self.config.bcrypt_rounds),
        )
        try:
            stored = self.store.insert(identity)
        except IdentityExists as exc:
            # [C3] lost the race to a concurrent registration, or user_id collided
            if exc.field == "email":
                logger.info("Registration rejected at insert: email already registered (%s)", email)
                raise EmailAlreadyRegistered() from exc
            logger.info("Registration rejected at insert: user id already registered (%s)", user_id)
            raise UserIdAlreadyRegistered() from exc

        logger.info("Registered user_id=%s", stored.user_id)
        return stored.public()

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> str:
        """Verify credentials and return an encoded session token.

        Raises AuthenticationFailed for every credential problem [C2], or
        StorageUnavailable when the store cannot be read.
        """
        identity = self.store.find_by_email(email) if email else None
        if identity is None:
            verify_password(password or "", self._dummy_hash)  # [C1]
            logger.info("Login failed: unknown email")
            raise AuthenticationFailed()
        if not password or not verify_password(password, identity.password_hash):
            logger.info("Login failed: bad password for user_id=%s", identity.user_id)
            raise AuthenticationFailed()
        if not identity.is_active:
            logger.info("Login failed: inactive account user_id=%s", identity.user_id)
            raise AuthenticationFailed()

        logger.info("Login succeeded for user_id=%s", identity.user_id)
        return self.issue_token(identity)

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    def issue_token(self, identity: Identity | PublicIdentity) -> str:
        """Sign a session token for identity, valid for the configured window."""
        issued_at = self.clock()
        expires_at = issued_at + timedelta(seconds=self.config.token_expire_seconds)
        return encode_token(
            user_id=identity.user_id,
            name=identity.name,
            email=identity.email,
            issued_at=issued_at,
            expires_at=expires_at,
            secret=self.config.secret_key,
            algorithm=self.config.algorithm,
        )

    def verify_token(self, token: str) -> Claims:
        """Return the claims of a valid token.

        Raises TokenExpired or TokenInvalid; both are logged under their own
        reason so they can be told apart in diagnostics.
        """
        try:
            return decode_token(token, self.config.secret_key, now=self.clock(), algorithm=self.config.algorithm)
        except TokenExpired:
            logger.info("Token rejected: expired")
            raise
        except TokenInvalid:
            logger.warning("Token rejected: invalid signature or malformed token")
            raise
