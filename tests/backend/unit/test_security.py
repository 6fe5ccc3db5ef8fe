"""
Unit tests for core.security module.
Tests password hashing and the access token claims used by the authorization gate.
"""
import pytest
import datetime as dt

import jwt

from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_access_token,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_is_salted(self):
        """Hashing the same password twice gives different hashes."""
        assert hash_password("Passw0rd!") != hash_password("Passw0rd!")

    def test_hash_is_not_plain_text(self):
        hashed = hash_password("Passw0rd!")
        assert isinstance(hashed, str)
        assert hashed != "Passw0rd!"
        assert hashed.startswith("$argon2")

    def test_verify_password(self):
        hashed = hash_password("Passw0rd!")
        assert verify_password("Passw0rd!", hashed) is True
        assert verify_password("passw0rd!", hashed) is False


class TestAccessTokens:
    """Tests for JWT creation and validation."""

    def test_token_carries_principal_claims(self):
        """Token payload should hold id, username and role."""
        token = create_access_token("principal-1", "seller_one", "seller")
        payload = decode_access_token(token)
        assert payload["sub"] == "principal-1"
        assert payload["username"] == "seller_one"
        assert payload["role"] == "seller"

    def test_token_expires_in_configured_window(self):
        token = create_access_token("principal-2", "sub_one", "subadmin")
        payload = decode_access_token(token)
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        assert abs(diff_minutes - ACCESS_TOKEN_EXPIRE_MINUTES) < 1
        assert payload["exp"] > dt.datetime.now(dt.timezone.utc).timestamp()

    def test_default_expiry_is_seven_days(self):
        assert ACCESS_TOKEN_EXPIRE_MINUTES == 7 * 24 * 60

    def test_role_changes_token(self):
        """Same principal with different roles gets distinguishable tokens."""
        as_user = decode_access_token(create_access_token("p", "name", "user"))
        as_admin = decode_access_token(create_access_token("p", "name", "admin"))
        assert as_user["role"] == "user"
        assert as_admin["role"] == "admin"

    def test_malformed_token_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token("invalid.token.here")

    def test_wrong_secret_rejected(self):
        token = create_access_token("p", "name", "user")
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret", algorithms=["HS256"])
