"""Unit tests for admin API key authentication."""

import asyncio
from unittest.mock import patch

import pytest

from gatekeeper.core.auth import parse_api_keys, validate_admin_key, verify_admin_key
from gatekeeper.core.errors import AuthenticationAppError


class TestParseAPIKeys:
    """Test API key parsing utility function."""

    def test_parse_multiple_keys(self) -> None:
        assert parse_api_keys("key1,key2,key3") == {"key1", "key2", "key3"}

    def test_parse_keys_with_whitespace(self) -> None:
        assert parse_api_keys("key1 , key2  ,  key3") == {"key1", "key2", "key3"}

    def test_parse_none_returns_empty_set(self) -> None:
        assert parse_api_keys(None) == set()

    def test_parse_whitespace_only_returns_empty_set(self) -> None:
        assert parse_api_keys("   ,  ,  ") == set()

    def test_parse_removes_duplicate_keys(self) -> None:
        assert parse_api_keys("key1,key2,key1") == {"key1", "key2"}


class TestValidateAdminKey:
    """Test core admin key validation logic."""

    @patch("gatekeeper.core.auth.settings")
    def test_validate_bypassed_when_auth_disabled(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = False

        validate_admin_key("any-random-key")
        validate_admin_key(None)

    @patch("gatekeeper.core.auth.settings")
    def test_validate_raises_when_no_keys_configured(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = True
        mock_settings.app.admin_api_keys = None

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key("some-key")

        assert exc_info.value.code == "api_keys_not_configured"

    @patch("gatekeeper.core.auth.settings")
    def test_validate_accepts_valid_key(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = True
        mock_settings.app.admin_api_keys = "valid-key-1,valid-key-2"

        validate_admin_key("valid-key-1")
        validate_admin_key("valid-key-2")

    @patch("gatekeeper.core.auth.settings")
    def test_validate_rejects_invalid_key(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = True
        mock_settings.app.admin_api_keys = "valid-key-1"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key("invalid-key")

        assert exc_info.value.code == "invalid_api_key"

    @patch("gatekeeper.core.auth.settings")
    def test_validate_rejects_missing_key(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = True
        mock_settings.app.admin_api_keys = "valid-key-1"

        with pytest.raises(AuthenticationAppError) as exc_info:
            validate_admin_key(None)

        assert exc_info.value.code == "missing_api_key"


class TestVerifyAdminKeyDependency:
    @patch("gatekeeper.core.auth.settings")
    def test_dependency_propagates_authentication_error(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = True
        mock_settings.app.admin_api_keys = "valid-key-1"

        with pytest.raises(AuthenticationAppError):
            asyncio.run(verify_admin_key("wrong"))

    @patch("gatekeeper.core.auth.settings")
    def test_dependency_accepts_valid_key(self, mock_settings) -> None:
        mock_settings.app.admin_api_key_required = True
        mock_settings.app.admin_api_keys = "valid-key-1"

        assert asyncio.run(verify_admin_key("valid-key-1")) is None
