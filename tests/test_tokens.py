"""Unit tests for auth/tokens.py -- pure functions, no I/O.

Covers:
- hash_password() salts every call; verify_password() accepts only the right password
- Passwords over 72 bytes are never hashed and never match
- encode_token()/decode_token() validity window is [issued_at, expires_at), to the microsecond
- Tampered, foreign-key, malformed, and claim-less tokens are TokenInvalid
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import TokenExpired, TokenInvalid
from auth.tokens import decode_token, encode_token, hash_password, verify_password

SECRET = "unit-test-secret-0123456789abcdef0123456789"
T0 = datetime(2026, 3, 1, 9, 30, 0, tzinfo=timezone.utc)
WINDOW = timedelta(hours=1)


def _token(issued_at: datetime = T0, window: timedelta = WINDOW, secret: str = SECRET) -> str:
    return encode_token("u1", "Ada", "ada@example.com", issued_at, issued_at + window, secret)


def _tamper_signature(token: str) -> str:
    header, payload, signature = token.split(".")
    # The first base64url character maps to whole signature bits, unlike the last.
    replacement = "A" if signature[0] != "A" else "B"
    return ".".join([header, payload, replacement + signature[1:]])


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


class TestPasswordHashing:
    @pytest.mark.parametrize("password", ["swordfish", "p", "correct horse battery staple", "pässwörd ✓"])
    def test_same_password_hashes_differently(self, password):
        assert hash_password(password, rounds=4) != hash_password(password, rounds=4)

    @pytest.mark.parametrize("password", ["swordfish", "p", "pässwörd ✓"])
    def test_verify_accepts_original(self, password):
        assert verify_password(password, hash_password(password, rounds=4)) is True

    @pytest.mark.parametrize("wrong", ["swordfisH", "swordfish ", "", "wrong"])
    def test_verify_rejects_other_passwords(self, wrong):
        hashed = hash_password("swordfish", rounds=4)
        assert verify_password(wrong, hashed) is False

    def test_hash_never_contains_plaintext(self):
        hashed = hash_password("swordfish", rounds=4)
        assert hashed != "swordfish"
        assert "swordfish" not in hashed

    def test_rounds_are_encoded_in_hash(self):
        assert hash_password("swordfish", rounds=5).startswith("$2b$05$")

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("swordfish", "not-a-bcrypt-hash") is False

    def test_input_past_72_bytes_does_not_match_its_prefix(self):
        hashed = hash_password("a" * 72, rounds=4)
        assert verify_password("a" * 72, hashed) is True
        assert verify_password("a" * 72 + "X", hashed) is False

    def test_hashing_over_72_bytes_is_refused(self):
        with pytest.raises(ValueError):
            hash_password("a" * 73, rounds=4)

    def test_multibyte_length_counts_bytes(self):
        # 25 three-byte characters is 75 bytes
        with pytest.raises(ValueError):
            hash_password("\u2713" * 25, rounds=4)


# ---------------------------------------------------------------------------
# Token validity window
# ---------------------------------------------------------------------------


class TestTokenWindow:
    def test_valid_at_issue_time(self):
        claims = decode_token(_token(), SECRET, now=T0)
        assert claims.user_id == "u1"
        assert claims.name == "Ada"
        assert claims.email == "ada@example.com"
        assert claims.issued_at == T0
        assert claims.expires_at == T0 + WINDOW

    @pytest.mark.parametrize(
        "offset",
        [timedelta(0), timedelta(seconds=1), timedelta(minutes=30), WINDOW - timedelta(microseconds=1)],
    )
    def test_valid_inside_window(self, offset):
        assert decode_token(_token(), SECRET, now=T0 + offset).email == "ada@example.com"

    @pytest.mark.parametrize("offset", [WINDOW, WINDOW + timedelta(seconds=1), timedelta(days=30)])
    def test_expired_from_window_end(self, offset):
        with pytest.raises(TokenExpired):
            decode_token(_token(), SECRET, now=T0 + offset)

    def test_fractional_issue_time_keeps_full_window(self):
        issued = T0 + timedelta(milliseconds=900)
        token = _token(issued_at=issued)
        claims = decode_token(token, SECRET, now=issued)
        assert claims.issued_at == issued
        assert claims.expires_at == issued + WINDOW
        assert decode_token(token, SECRET, now=issued + WINDOW - timedelta(milliseconds=500)).user_id == "u1"
        with pytest.raises(TokenExpired):
            decode_token(token, SECRET, now=issued + WINDOW)

    def test_whole_second_claims_are_integers(self):
        payload = jwt.get_unverified_claims(_token())
        assert payload["iat"] == int(T0.timestamp())
        assert isinstance(payload["exp"], int)


# ---------------------------------------------------------------------------
# Invalid tokens
# ---------------------------------------------------------------------------


class TestInvalidTokens:
    def test_altered_signature_is_invalid(self):
        with pytest.raises(TokenInvalid):
            decode_token(_tamper_signature(_token()), SECRET, now=T0)

    def test_altered_signature_is_invalid_even_when_expired(self):
        with pytest.raises(TokenInvalid):
            decode_token(_tamper_signature(_token()), SECRET, now=T0 + timedelta(days=1))

    def test_altered_payload_is_invalid(self):
        header, _payload, signature = _token().split(".")
        forged = jwt.encode({"user_id": "admin"}, "other", algorithm="HS256").split(".")[1]
        with pytest.raises(TokenInvalid):
            decode_token(".".join([header, forged, signature]), SECRET, now=T0)

    def test_other_secret_is_invalid(self):
        token = _token(secret="a-completely-different-secret-value-000000")
        with pytest.raises(TokenInvalid):
            decode_token(token, SECRET, now=T0)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "...."])
    def test_malformed_is_invalid(self, garbage):
        with pytest.raises(TokenInvalid):
            decode_token(garbage, SECRET, now=T0)

    def test_missing_identity_claims_is_invalid(self):
        token = jwt.encode(
            {"sub": "u1", "iat": int(T0.timestamp()), "exp": int((T0 + WINDOW).timestamp())},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalid):
            decode_token(token, SECRET, now=T0)

    def test_unexpected_algorithm_is_invalid(self):
        token = encode_token("u1", "Ada", "ada@example.com", T0, T0 + WINDOW, SECRET, algorithm="HS512")
        with pytest.raises(TokenInvalid):
            decode_token(token, SECRET, now=T0, algorithm="HS256")
