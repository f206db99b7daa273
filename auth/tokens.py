"""
auth/tokens.py -- Password hashing and session token codec.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). gensalt() draws a new
       random salt on every call and the salt is embedded in the output, so
       hashing the same password twice never yields the same string and no
       separate salt column is needed. The cost factor is a parameter; the
       service passes AuthConfig.bcrypt_rounds.

  Tokens: python-jose JWT, HS256 by default. Claims are sub/user_id, name,
       email, iat, exp. exp is an epoch NumericDate.

       decode_token() checks the signature with jose but evaluates exp itself
       against the caller's clock: a token is valid while now < exp and
       expired once now >= exp, and lets tests pin the clock. iat and exp
       keep sub-second precision (JWT NumericDate may be fractional), so exp
       is exactly issue time plus the window. Signature is checked first, so
       a tampered token is TokenInvalid even when it is also past its expiry.

Nothing here reads configuration. Secrets and costs are arguments.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

import bcrypt
from jose import JWTError, jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.models import Claims

DEFAULT_ALGORITHM = "HS256"

# bcrypt only looks at the first 72 bytes; longer inputs never hash or verify.
BCRYPT_MAX_BYTES = 72

_REQUIRED_CLAIMS = ("user_id", "name", "email", "iat", "exp")

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError for input over BCRYPT_MAX_BYTES: older bcrypt releases
    would otherwise hash only the first 72 bytes.
    """
    if len(plain.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValueError(f"password is longer than {BCRYPT_MAX_BYTES} bytes")
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash is a
    mismatch, not an error. Input over BCRYPT_MAX_BYTES never matches, since
    no stored hash was made from it.
    """
    if len(plain.encode("utf-8")) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _numeric_date(moment: datetime) -> int | float:
    # Sub-second instants stay fractional so exp is exactly issue time + window.
    if moment.microsecond:
        return moment.timestamp()
    return int(moment.timestamp())


def encode_token(
    user_id: str,
    name: str,
    email: str,
    issued_at: datetime,
    expires_at: datetime,
    secret: str,
    algorithm: str = DEFAULT_ALGORITHM,
) -> str:
    """Encode a signed JWT carrying the identity claims and expiry."""
    payload = {
        "sub": user_id,
        "user_id": user_id,
        "name": name,
        "email": email,
        "iat": _numeric_date(issued_at),
        "exp": _numeric_date(expires_at),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, now: datetime, algorithm: str = DEFAULT_ALGORITHM) -> Claims:
    """Verify a JWT and return its claims.

    Raises:
        TokenInvalid: malformed token, bad signature, or missing claims.
        TokenExpired: signature is good but now >= exp.
    """
    if not token:
        raise TokenInvalid()
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm], options={"verify_exp": False})
    except JWTError as exc:
        raise TokenInvalid() from exc

    if any(key not in payload for key in _REQUIRED_CLAIMS):
        raise TokenInvalid()
    try:
        issued_at = datetime.fromtimestamp(float(payload["iat"]), tz=timezone.utc)
        expires_at = datetime.fromtimestamp(float(payload["exp"]), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as exc:
        raise TokenInvalid() from exc

    if now >= expires_at:
        raise TokenExpired()

    return Claims(
        user_id=str(payload["user_id"]),
        name=str(payload["name"]),
        email=str(payload["email"]),
        issued_at=issued_at,
        expires_at=expires_at,
    )
