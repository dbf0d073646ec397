# Set environment variables BEFORE any imports that read them
import os
import tempfile

os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="workbench-tests-")
os.environ["SESSION_SECRET"] = "test-session-secret"
os.environ["AUTH_USERNAME"] = "admin"
os.environ["AUTH_PASSWORD"] = "admin"

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from workbench.core.config import Settings
from workbench.core.storage import Storage
from workbench.main import create_app
from workbench.providers import gemini_provider

GENERIC_ENDPOINT = "https://llm.example.com/v1/chat/completions"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        DATA_DIR=str(tmp_path),
        SESSION_SECRET="test-session-secret",
        SESSION_SAVE_DELAY_SECONDS=0.0,
        NOTE_SUMMARY_ENABLED=False,
    )


@pytest.fixture
def storage(tmp_path):
    return Storage(tmp_path, "admin", "admin")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def anon_client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client(anon_client):
    response = anon_client.post("/api/login", json={"username": "admin", "password": "admin"})
    assert response.status_code == 200
    return anon_client


@pytest.fixture
def generic_config(client):
    response = client.post(
        "/api/config",
        json={"name": "Local", "endpoint": GENERIC_ENDPOINT, "token": "sk-test-0123456789", "model": "gpt-test"},
    )
    assert response.status_code == 200
    return response.json()


class FakeGenerativeModel:
    def __init__(self, fake, model_name):
        self.fake = fake
        self.model_name = model_name

    def generate_content(self, contents):
        self.fake.calls.append({"model": self.model_name, "contents": contents})
        if self.fake.error:
            raise self.fake.error
        return SimpleNamespace(text=self.fake.text, usage_metadata=SimpleNamespace(total_token_count=42))


class FakeGenAI:
    """Stands in for google.generativeai."""

    def __init__(self, text="Hi from Gemini", error=None):
        self.text = text
        self.error = error
        self.api_keys = []
        self.calls = []

    def configure(self, api_key):
        self.api_keys.append(api_key)

    def GenerativeModel(self, model_name):
        return FakeGenerativeModel(self, model_name)


@pytest.fixture
def fake_genai(monkeypatch):
    fake = FakeGenAI()
    monkeypatch.setattr(gemini_provider, "_load_genai", lambda: fake)
    return fake
