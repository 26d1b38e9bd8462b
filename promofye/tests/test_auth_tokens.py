import jwt
import pytest

from promofye.core.auth import decode_access_token, issue_access_token
from promofye.core.config import settings
from promofye.core.errors import AuthenticationError


def test_token_carries_subject_and_email():
    token = issue_access_token("user-1", "user@example.com")
    claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    assert claims["sub"] == "user-1"
    assert claims["email"] == "user@example.com"
    assert decode_access_token(token) == "user-1"


def test_expired_token_is_rejected():
    token = issue_access_token("user-1", expires_minutes=-5)
    with pytest.raises(AuthenticationError) as exc_info:
        decode_access_token(token)
    assert str(exc_info.value) == "Token expired"


def test_token_signed_with_another_secret_is_rejected():
    token = jwt.encode({"sub": "user-1", "exp": 9999999999}, "some-other-secret-0123456789abcdef", algorithm="HS256")
    with pytest.raises(AuthenticationError) as exc_info:
        decode_access_token(token)
    assert str(exc_info.value) == "Invalid token"


def test_deleted_user_token_is_401(client):
    resp = client.get("/api/auth/me", headers={"Authorization": f"Bearer {issue_access_token('gone')}"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "User no longer exists"
