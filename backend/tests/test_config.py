"""
Unit tests for settings loading.
"""
import pytest

from core.config import Settings


pytestmark = pytest.mark.unit

OPTIONAL_SETTINGS = ("SMTP_HOST", "SMTP_USERNAME", "SMTP_PASSWORD", "SMTP_FROM_EMAIL", "MONGO_URI")


def test_sql_only_settings_without_smtp_or_mongo(monkeypatch):
    for name in OPTIONAL_SETTINGS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("USE_MONGO", "false")

    loaded = Settings(_env_file=None)

    for name in OPTIONAL_SETTINGS:
        assert getattr(loaded, name) is None
    assert loaded.USE_MONGO is False


def test_optional_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("MONGO_URI", "mongodb://localhost:27017")

    loaded = Settings(_env_file=None)

    assert loaded.SMTP_HOST == "smtp.example.com"
    assert loaded.MONGO_URI == "mongodb://localhost:27017"
