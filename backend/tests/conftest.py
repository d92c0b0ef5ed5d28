"""
Pytest configuration and fixtures for the backend tests.
"""
import asyncio
import os
import re
import tempfile

_TEST_DIR = tempfile.mkdtemp(prefix="internboard-tests-")

# Settings are read at import time, so the environment is fixed up first
os.environ["USE_MONGO"] = "false"
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TEST_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["LOG_DIR"] = os.path.join(_TEST_DIR, "logs")
os.environ["EXPIRY_SWEEP_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from faker import Faker
from fastapi.testclient import TestClient

from main import app
from api.dependencies import get_mail_channel
from db.base import initialize_database, drop_database

fake = Faker()


class FakeMailChannel:
    """Records every message instead of sending it."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.sent = []

    async def send(self, to_address: str, subject: str, html_body: str) -> bool:
        self.sent.append({"to": to_address, "subject": subject, "html": html_body})
        return self.succeed

    @property
    def last_code(self):
        match = re.search(r"<b>(\d{6})</b>", self.sent[-1]["html"])
        return match.group(1) if match else None


async def _reset_database():
    await drop_database()
    await initialize_database()


@pytest.fixture(autouse=True)
def clean_db():
    """Fresh tables for every test."""
    asyncio.run(_reset_database())
    yield


@pytest.fixture
def mailer() -> FakeMailChannel:
    return FakeMailChannel()


@pytest.fixture
def failing_mailer() -> FakeMailChannel:
    return FakeMailChannel(succeed=False)


@pytest.fixture
def client(mailer: FakeMailChannel):
    app.dependency_overrides[get_mail_channel] = lambda: mailer
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def email() -> str:
    return fake.unique.email()


@pytest.fixture
def password() -> str:
    return "secret1"


@pytest.fixture
def signup_user(client: TestClient):
    """Sign up through the HTTP surface; the client keeps the session cookie."""
    def _signup(email: str, password: str = "secret1"):
        return client.post("/signup", data={"username": email, "password": password}, follow_redirects=False)
    return _signup
