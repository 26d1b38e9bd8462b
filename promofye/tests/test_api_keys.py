"""Admin-managed provider keys and the cached active-key lookup."""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from promofye.core.config import settings
from promofye.core.errors import ApiKeyConfigError, NotFoundError, ValidationError
from promofye.features.api_keys.service import (
    add_api_key,
    get_active_api_key,
    list_api_keys,
    toggle_api_key,
    validate_key_format,
)
from promofye.features.generation.gemini import GeminiImageClient, MockImageClient, get_image_client
from promofye.models.api_key import mask_secret

KEY_A = "AIzaSyA-0123456789abcdefghij"
KEY_B = "AIzaSyB-9876543210zyxwvutsrq"


def test_add_requires_all_fields(admin_user):
    with pytest.raises(ValidationError):
        add_api_key("", "google_gemini", KEY_A, admin_user.id)
    with pytest.raises(ValidationError):
        add_api_key("Main", "google_gemini", "  ", admin_user.id)


def test_added_key_is_active_and_listed(admin_user):
    key = add_api_key("Main", "google_gemini", KEY_A, admin_user.id)
    assert key.is_active is True
    assert key.created_by == admin_user.id
    assert [k.id for k in list_api_keys()] == [key.id]


def test_public_dict_masks_the_secret(admin_user):
    key = add_api_key("Main", "google_gemini", KEY_A, admin_user.id)
    public = key.public_dict()
    assert "api_key" not in public
    assert public["masked_key"] == mask_secret(KEY_A)
    assert public["masked_key"].startswith("AIza") and public["masked_key"].endswith(KEY_A[-4:])
    assert KEY_A not in repr(key)


def test_no_key_and_no_env_returns_none(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    assert get_active_api_key() is None


def test_env_key_is_fallback(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", KEY_B)
    assert get_active_api_key() == KEY_B


def test_lookup_failure_falls_back_to_env(monkeypatch, admin_user):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", KEY_B)
    add_api_key("Main", "google_gemini", KEY_A, admin_user.id)
    failure = OperationalError("SELECT api_keys", {}, Exception("connection refused"))

    with patch("promofye.features.api_keys.service.get_db_session", side_effect=failure):
        assert get_active_api_key() == KEY_B

    # the fallback is not cached
    assert get_active_api_key() == KEY_A


def test_stored_key_wins_over_env(monkeypatch, admin_user):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", KEY_B)
    add_api_key("Main", "google_gemini", KEY_A, admin_user.id)
    assert get_active_api_key() == KEY_A


def test_lookup_is_cached_until_keys_change(monkeypatch, admin_user):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    assert get_active_api_key() is None

    key = add_api_key("Main", "google_gemini", KEY_A, admin_user.id)
    assert get_active_api_key() == KEY_A

    toggle_api_key(key.id)
    assert get_active_api_key() is None


def test_other_provider_keys_are_ignored(monkeypatch, admin_user):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    add_api_key("Other", "openai", KEY_A, admin_user.id)
    assert get_active_api_key() is None
    assert get_active_api_key("openai") == KEY_A


def test_toggle_unknown_key():
    with pytest.raises(NotFoundError):
        toggle_api_key("missing")


@pytest.mark.parametrize("value", [None, "", "   ", "short-key"])
def test_validate_key_format_rejects_short_keys(value):
    with pytest.raises(ApiKeyConfigError) as exc_info:
        validate_key_format(value)
    assert "Invalid Google Gemini API key format" in str(exc_info.value)


def test_validate_key_format_strips():
    assert validate_key_format(f"  {KEY_A}  ") == KEY_A


def test_image_client_is_mock_without_key(monkeypatch):
    monkeypatch.setattr(settings, "GEMINI_API_KEY", None)
    assert isinstance(get_image_client(), MockImageClient)


def test_image_client_rejects_malformed_key(monkeypatch, admin_user):
    add_api_key("Bad", "google_gemini", "too-short", admin_user.id)
    with pytest.raises(ApiKeyConfigError):
        get_image_client()


def test_image_client_uses_stored_key(monkeypatch, admin_user):
    add_api_key("Main", "google_gemini", KEY_A, admin_user.id)
    client = get_image_client()
    assert isinstance(client, GeminiImageClient)
