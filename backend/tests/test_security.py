"""Comprehensive tests for security utilities.

Tests cover:
- Password hashing and verification
- JWT token creation and decoding
- Token expiration handling
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from jose import jwt

from blog_api.core.config import get_settings
from blog_api.core.security import (
    TokenClaims,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)


class TestPasswordHashing:
    """Tests for password hashing functions."""

    @pytest.mark.asyncio
    async def test_password_hash_different_from_plain(self):
        """Test that hashed password differs from plain text."""
        plain_password = "my_secret_password"

        hashed = await get_password_hash(plain_password)

        assert hashed != plain_password
        assert hashed.startswith("$2")

    @pytest.mark.asyncio
    async def test_password_hash_unique_each_time(self):
        """Test that same password produces different hashes (salting)."""
        hash1 = await get_password_hash("same_password")
        hash2 = await get_password_hash("same_password")

        assert hash1 != hash2

    @pytest.mark.asyncio
    async def test_verify_password(self):
        hashed = await get_password_hash("correct_password")

        assert await verify_password("correct_password", hashed) is True
        assert await verify_password("wrong_password", hashed) is False
        assert await verify_password("", hashed) is False


class TestJWTTokens:
    """Tests for JWT token functions."""

    def test_round_trip(self):
        token = create_access_token(123, "admin")

        assert decode_access_token(token) == TokenClaims(user_id=123, role="admin")

    def test_default_role(self):
        assert decode_access_token(create_access_token(5)).role == "user"

    def test_contains_standard_claims(self):
        settings = get_settings()
        token = create_access_token(123)

        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])

        assert payload["sub"] == "123"
        assert "exp" in payload
        assert "iat" in payload

    @pytest.mark.parametrize("token", ["invalid.token.here", "", "not-a-jwt-at-all"])
    def test_garbage_returns_none(self, token: str):
        assert decode_access_token(token) is None

    def test_non_numeric_subject_returns_none(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "not-a-number"}, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
        )
        assert decode_access_token(token) is None


class TestTokenExpiration:
    """Tests for token expiration handling."""

    def test_expired_token_returns_none(self):
        token = create_access_token(123, expires_delta=timedelta(seconds=-1))
        assert decode_access_token(token) is None

    def test_future_token_is_valid(self):
        token = create_access_token(123, expires_delta=timedelta(days=30))
        assert decode_access_token(token).user_id == 123


class TestTokenSecurity:

    def test_token_with_wrong_secret_fails(self):
        token = create_access_token(123)

        with patch("blog_api.core.security.get_settings") as mock_settings:
            mock_settings.return_value.jwt_secret_key = "different-secret-key-12345678901234567890"
            mock_settings.return_value.jwt_algorithm = "HS256"

            assert decode_access_token(token) is None
