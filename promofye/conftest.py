# promofye/conftest.py
import os

# Settings are read at import time, so the test environment goes first
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TEST_DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-for-promofye-tests-0123456789"
os.environ["SKIP_ENV_VALIDATION"] = "1"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("STRIPE_WEBHOOK_SECRET", None)

from typing import List, Optional, Sequence
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from promofye.core.auth import issue_access_token
from promofye.core.database import reset_database
from promofye.core.metrics import METRICS
from promofye.features.api_keys.service import clear_api_key_cache
from promofye.features.plans.service import seed_plans
from promofye.features.users.service import sign_up
from promofye.models.image import ImagePart

# 8-byte PNG signature; enough for the base64/MIME checks
PNG_B64 = "iVBORw0KGgo="
FAKE_RESULT_B64 = "ZmFrZS1pbWFnZQ=="  # b"fake-image"


class FakeImageClient:
    """Records calls and returns a canned image (or raises)."""

    def __init__(self, result: Optional[str] = FAKE_RESULT_B64, error: Optional[Exception] = None):
        self.result = result
        self.error = error
        self.calls: List[dict] = []

    def generate_image(self, prompt: str, aspect_ratio: str = "1:1"):
        self.calls.append({"method": "generate_image", "prompt": prompt, "aspect_ratio": aspect_ratio})
        if self.error:
            raise self.error
        return self.result

    def edit_image(self, parts: Sequence[ImagePart], text: str, *, label: Optional[str] = None):
        self.calls.append({"method": "edit_image", "parts": list(parts), "text": text, "label": label})
        if self.error:
            raise self.error
        return self.result


@pytest.fixture(autouse=True)
def fresh_db():
    """Empty schema with the default plans for every test."""
    reset_database()
    seed_plans()
    clear_api_key_cache()
    METRICS.reset()
    yield
    clear_api_key_cache()


@pytest.fixture
def client():
    from promofye.main import app
    return TestClient(app)


@pytest.fixture
def user():
    return sign_up("user@example.com", "secret123", "Test User")


@pytest.fixture
def admin_user():
    return sign_up("admin@example.com", "adminpass", "Admin", is_admin=True)


@pytest.fixture
def auth_headers(user):
    return {"Authorization": f"Bearer {issue_access_token(user.id)}"}


@pytest.fixture
def admin_headers(admin_user):
    return {"Authorization": f"Bearer {issue_access_token(admin_user.id)}"}


@pytest.fixture
def png_part():
    return ImagePart(base64_data=PNG_B64, mime_type="image/png")


@pytest.fixture
def fake_image_client():
    fake = FakeImageClient()
    with patch("promofye.features.generation.service.get_image_client", return_value=fake):
        yield fake
