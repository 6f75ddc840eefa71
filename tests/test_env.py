import logging

import pytest

from jobboard.env import Settings, is_truthy, load_settings, validate_settings

_ENV_KEYS = (
    "JOBBOARD_API_BASE_URL",
    "JOBBOARD_API_VERSION",
    "JOBBOARD_API_TIMEOUT",
    "JOBBOARD_ENV",
    "JOBBOARD_TOKEN_STORE_PATH",
    "JOBBOARD_CSRF_TOKEN",
    "JOBBOARD_COALESCE_REFRESH",
    "JOBBOARD_API_DEBUG",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _settings(**overrides) -> Settings:
    values = {
        "base_url": "https://jobs.example.com",
        "api_version": "v1",
        "timeout": 120.0,
        "production": False,
    }
    values.update(overrides)
    return Settings(**values)


def test_defaults() -> None:
    settings = load_settings()

    assert settings.base_url == "http://localhost:8000"
    assert settings.api_version == "v1"
    assert settings.timeout == 120.0
    assert settings.production is False
    assert settings.token_store_path is None
    assert settings.csrf_token is None
    assert settings.coalesce_refresh is False
    assert settings.debug is True


def test_values_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("JOBBOARD_API_BASE_URL", "https://jobs.example.com/")
    monkeypatch.setenv("JOBBOARD_API_VERSION", "/v2/")
    monkeypatch.setenv("JOBBOARD_API_TIMEOUT", "15")
    monkeypatch.setenv("JOBBOARD_ENV", "Production")
    monkeypatch.setenv("JOBBOARD_TOKEN_STORE_PATH", "/tmp/tokens.json")
    monkeypatch.setenv("JOBBOARD_CSRF_TOKEN", "csrf-1")
    monkeypatch.setenv("JOBBOARD_COALESCE_REFRESH", "yes")
    monkeypatch.setenv("JOBBOARD_API_DEBUG", "0")

    settings = load_settings()

    assert settings.base_url == "https://jobs.example.com"
    assert settings.api_version == "v2"
    assert settings.timeout == 15.0
    assert settings.production is True
    assert settings.token_store_path == "/tmp/tokens.json"
    assert settings.csrf_token == "csrf-1"
    assert settings.coalesce_refresh is True
    assert settings.debug is False


@pytest.mark.parametrize("raw", ["soon", "0", "-5"])
def test_invalid_timeout(monkeypatch, raw) -> None:
    monkeypatch.setenv("JOBBOARD_API_TIMEOUT", raw)

    with pytest.raises(RuntimeError, match="JOBBOARD_API_TIMEOUT"):
        load_settings()


def test_is_truthy() -> None:
    assert is_truthy("TRUE") is True
    assert is_truthy(" on ") is True
    assert is_truthy("0") is False
    assert is_truthy(None) is False


def test_validate_accepts_http_url() -> None:
    validate_settings(_settings(base_url="http://localhost:8000"))


def test_validate_rejects_bad_url() -> None:
    with pytest.raises(RuntimeError, match="JOBBOARD_API_BASE_URL"):
        validate_settings(_settings(base_url="not a url"))


def test_validate_rejects_empty_version() -> None:
    with pytest.raises(RuntimeError, match="JOBBOARD_API_VERSION"):
        validate_settings(_settings(api_version=""))


def test_validate_warns_on_plain_http_in_production(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="jobboard.api"):
        validate_settings(_settings(base_url="http://jobs.example.com", production=True))

    assert "HTTPS" in caplog.text
