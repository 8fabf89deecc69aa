"""Tests for the configuration helpers."""

from __future__ import annotations

import os

import pytest

from roster.config import Settings, load_env_file


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in (
        "ROSTER_TIMEZONE",
        "ROSTER_LOG_LOCALE",
        "ROSTER_SEED_DEFAULTS",
        "ROSTER_TEST_ONLY",
    ):
        monkeypatch.delenv(key, raising=False)


def test_settings_defaults():
    settings = Settings.from_env()

    assert settings.timezone == "UTC"
    assert settings.log_locale == "pt-BR"
    assert settings.seed_defaults is True


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("ROSTER_TIMEZONE", "America/Sao_Paulo")
    monkeypatch.setenv("ROSTER_LOG_LOCALE", "en")
    monkeypatch.setenv("ROSTER_SEED_DEFAULTS", "off")

    settings = Settings.from_env()

    assert settings.timezone == "America/Sao_Paulo"
    assert settings.log_locale == "en"
    assert settings.seed_defaults is False


def test_unsupported_locale_falls_back(monkeypatch):
    monkeypatch.setenv("ROSTER_LOG_LOCALE", "de-DE")

    assert Settings.from_env().log_locale == "pt-BR"


def test_env_file_values_loaded(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nROSTER_TEST_ONLY=\"from-file\"\nnot a pair\n", encoding="utf-8"
    )

    load_env_file(env_file)

    assert os.environ["ROSTER_TEST_ONLY"] == "from-file"
    monkeypatch.delenv("ROSTER_TEST_ONLY")


def test_environment_variable_overrides_env_file(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("ROSTER_TEST_ONLY=file-value\n", encoding="utf-8")
    monkeypatch.setenv("ROSTER_TEST_ONLY", "env-value")

    load_env_file(env_file)

    assert os.environ["ROSTER_TEST_ONLY"] == "env-value"


def test_missing_env_file_is_ignored(tmp_path):
    load_env_file(tmp_path / "absent.env")

    assert "ROSTER_TEST_ONLY" not in os.environ
