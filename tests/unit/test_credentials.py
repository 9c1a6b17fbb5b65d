"""
Unit tests for credential completion.

The interactive provider is driven with fake input/getpass functions.
"""

import pytest

from catalog_migration.credentials import (
    MONGO_PROMPTS,
    POSTGRES_PROMPTS,
    NoInputSecretProvider,
    PromptSecretProvider,
    SecretProvider,
    complete_settings,
)
from catalog_migration.errors import ConfigurationError
from catalog_migration.models import MongoSettings, PostgresSettings


class RecordingProvider(SecretProvider):
    """Answers from a dict and records what was asked."""

    def __init__(self, answers):
        self.answers = answers
        self.asked = []

    def get(self, label, *, secret=False):
        self.asked.append((label, secret))
        return self.answers.get(label)


def test_prompts_only_for_missing_fields(monkeypatch):
    monkeypatch.setenv("MONGO_USERNAME", "reader")
    monkeypatch.setenv("MONGO_DATABASE", "catalog")
    provider = RecordingProvider({"MongoDB password": "secret"})

    settings = complete_settings(MongoSettings(), MONGO_PROMPTS, provider)

    assert settings.username == "reader"
    assert settings.password == "secret"
    assert settings.database == "catalog"
    assert ("MongoDB password", True) in provider.asked
    assert all(label != "MongoDB username" for label, _ in provider.asked)


def test_optional_field_may_stay_empty():
    provider = RecordingProvider(
        {"MongoDB username": "u", "MongoDB password": "p", "MongoDB database name": "db"}
    )
    settings = complete_settings(MongoSettings(), MONGO_PROMPTS, provider)
    assert settings.replica_set is None


def test_missing_required_field_without_input():
    with pytest.raises(ConfigurationError, match="POSTGRES_USER"):
        complete_settings(PostgresSettings(), POSTGRES_PROMPTS, NoInputSecretProvider())


def test_complete_settings_returns_copy():
    original = PostgresSettings()
    provider = RecordingProvider(
        {"PostgreSQL user": "w", "PostgreSQL password": "p", "PostgreSQL database name": "db"}
    )
    completed = complete_settings(original, POSTGRES_PROMPTS, provider)
    assert completed.user == "w"
    assert original.user is None


class TestPromptSecretProvider:
    """Test the interactive provider."""

    def test_secrets_use_getpass(self):
        calls = []
        provider = PromptSecretProvider(
            input_func=lambda prompt: calls.append(("input", prompt)) or "visible",
            getpass_func=lambda prompt: calls.append(("getpass", prompt)) or "hidden",
        )

        assert provider.get("MongoDB username") == "visible"
        assert provider.get("MongoDB password", secret=True) == "hidden"
        assert calls == [("input", "MongoDB username: "), ("getpass", "MongoDB password: ")]

    def test_blank_answer_is_none(self):
        provider = PromptSecretProvider(input_func=lambda prompt: "   ")
        assert provider.get("MongoDB replica set name") is None

    def test_end_of_input_is_none(self):
        def _eof(prompt):
            raise EOFError

        provider = PromptSecretProvider(input_func=_eof, getpass_func=_eof)
        assert provider.get("PostgreSQL user") is None
        assert provider.get("PostgreSQL password", secret=True) is None

    def test_secret_keeps_surrounding_spaces(self):
        provider = PromptSecretProvider(getpass_func=lambda prompt: " pa ss ")
        assert provider.get("MongoDB password", secret=True) == " pa ss "

    def test_empty_secret_is_none(self):
        provider = PromptSecretProvider(getpass_func=lambda prompt: "")
        assert provider.get("MongoDB password", secret=True) is None
