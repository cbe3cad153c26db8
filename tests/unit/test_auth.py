"""
Unit tests for admin authentication.
"""

from datetime import timedelta

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from sitescan.api.auth import (
    create_access_token,
    decode_token,
    get_current_admin,
    verify_admin_credentials,
)


class TestAuth:
    """Tests for authentication utilities."""

    def test_create_access_token(self):
        """Test JWT token creation."""
        token = create_access_token(username="admin")

        assert isinstance(token, str)
        assert len(token) > 0

    def test_decode_valid_token(self):
        """Test decoding a valid token."""
        token = create_access_token(username="admin")

        token_data = decode_token(token)

        assert token_data.username == "admin"
        assert token_data.role == "admin"
        assert token_data.exp is not None

    def test_decode_expired_token(self):
        """Test decoding an expired token raises error."""
        token = create_access_token(
            username="admin",
            expires_delta=timedelta(hours=-1),
        )

        with pytest.raises(HTTPException) as exc_info:
            decode_token(token)

        assert exc_info.value.status_code == 401

    def test_decode_invalid_token(self):
        """Test decoding an invalid token raises error."""
        with pytest.raises(HTTPException) as exc_info:
            decode_token("invalid-token")

        assert exc_info.value.status_code == 401

    def test_verify_admin_credentials(self):
        """Test credential check against configured admin account."""
        assert verify_admin_credentials("admin", "test-password") is True
        assert verify_admin_credentials("admin", "wrong") is False
        assert verify_admin_credentials("root", "test-password") is False

    async def test_non_admin_role_forbidden(self):
        """Test tokens without the admin role are rejected."""
        token = create_access_token(username="viewer", role="viewer")
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_admin(credentials)

        assert exc_info.value.status_code == 403

    async def test_admin_resolved(self):
        """Test a valid admin token resolves to the admin context."""
        token = create_access_token(username="admin")
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        admin = await get_current_admin(credentials)

        assert admin.username == "admin"
