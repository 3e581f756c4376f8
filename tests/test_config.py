import pytest
from pydantic import ValidationError

from studyai.app.core.config import Settings


def test_defaults_match_free_tier() -> None:
    settings = Settings(_env_file=None)
    assert settings.daily_limit == 15
    assert settings.upstream_max_tokens < settings.upstream_premium_max_tokens
    assert settings.cors_allow_origin == "*"
    assert "authorization" in settings.cors_allow_headers


def test_database_url_override(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./local.db")
    monkeypatch.setenv("SERVICE_DATABASE_URL", "")

    settings = Settings(_env_file=None)
    assert settings.database_url == "sqlite+aiosqlite:///./local.db"
    # The privileged credential falls back to the regular one
    assert settings.service_database_url == settings.database_url


def test_database_url_built_from_parts(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "")
    monkeypatch.setenv("DB_HOST", "db.internal")
    monkeypatch.setenv("DB_NAME", "study")

    settings = Settings(_env_file=None)
    assert settings.database_url.startswith("postgresql+asyncpg://")
    assert settings.database_url.endswith("@db.internal:5432/study")


def test_service_database_url(monkeypatch) -> None:
    monkeypatch.setenv("SERVICE_DATABASE_URL", "postgresql+asyncpg://service@db/study")

    settings = Settings(_env_file=None)
    assert settings.service_database_url == "postgresql+asyncpg://service@db/study"


@pytest.mark.parametrize("field", ["upstream_timeout", "auth_timeout", "httpx_read_timeout"])
def test_timeouts_must_be_positive(field: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


@pytest.mark.parametrize("field", ["daily_limit", "max_message_chars", "upstream_max_tokens"])
def test_limits_must_be_at_least_one(field: str) -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, **{field: 0})


@pytest.mark.parametrize(("raw", "expected"), [("JSON", "json"), (" text ", "text"), ("structured", "structured")])
def test_log_format_normalised(raw: str, expected: str) -> None:
    assert Settings(_env_file=None, log_format=raw).log_format == expected


def test_log_format_rejects_unknown() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_format="xml")
