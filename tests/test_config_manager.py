"""Tests for ScanClientConfig."""

from sowhat_scan.config.config_manager import (
    DEFAULT_API_URL,
    DEFAULT_POLL_INTERVAL,
    ScanClientConfig,
)


def _clear_env(monkeypatch):
    for name in (
        "SOWHAT_API_URL",
        "SOWHAT_FUNCTIONS_PREFIX",
        "SOWHAT_HTTP_TIMEOUT",
        "SOWHAT_POLL_INTERVAL",
        "SOWHAT_REDISPATCH_STATUSES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear_env(monkeypatch)
    config = ScanClientConfig.from_env()

    assert config.api_url == DEFAULT_API_URL
    assert config.functions_prefix == "/.netlify/functions"
    assert config.http_timeout == 30.0
    assert config.poll_interval == DEFAULT_POLL_INTERVAL
    assert config.redispatch_statuses == ("captured",)


def test_reads_environment(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("SOWHAT_API_URL", "https://scan.example.com/")
    monkeypatch.setenv("SOWHAT_FUNCTIONS_PREFIX", "api/")
    monkeypatch.setenv("SOWHAT_HTTP_TIMEOUT", "12.5")
    monkeypatch.setenv("SOWHAT_POLL_INTERVAL", "3")
    monkeypatch.setenv("SOWHAT_REDISPATCH_STATUSES", "Captured, pending ,")

    config = ScanClientConfig.from_env()

    assert config.api_url == "https://scan.example.com"
    assert config.functions_prefix == "/api"
    assert config.http_timeout == 12.5
    assert config.poll_interval == 3.0
    assert config.redispatch_statuses == ("captured", "pending")
    assert config.function_path("capture-page") == "/api/capture-page"


def test_invalid_numbers_fall_back(monkeypatch, caplog):
    _clear_env(monkeypatch)
    monkeypatch.setenv("SOWHAT_POLL_INTERVAL", "soon")

    with caplog.at_level("WARNING"):
        config = ScanClientConfig.from_env()

    assert config.poll_interval == DEFAULT_POLL_INTERVAL
    assert "SOWHAT_POLL_INTERVAL" in caplog.text


def test_explicit_arguments_win(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("SOWHAT_API_URL", "https://env.example.com")
    monkeypatch.setenv("SOWHAT_POLL_INTERVAL", "9")

    config = ScanClientConfig.from_env(api_url="http://cli:1234", poll_interval=2.0, http_timeout=4.0)

    assert config.api_url == "http://cli:1234"
    assert config.poll_interval == 2.0
    assert config.http_timeout == 4.0


def test_empty_redispatch_statuses_disable_retry(monkeypatch):
    _clear_env(monkeypatch)
    monkeypatch.setenv("SOWHAT_REDISPATCH_STATUSES", "")

    assert ScanClientConfig.from_env().redispatch_statuses == ()


def test_function_path_with_default_prefix():
    config = ScanClientConfig(api_url="http://test")
    assert config.function_path("/snapshot-status") == "/.netlify/functions/snapshot-status"
