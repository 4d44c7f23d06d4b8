"""Tests for settings loading from YAML and environment."""
from __future__ import annotations

import os

import pytest
import uvicorn
from pydantic import ValidationError

from apiai_fulfillment import main
from apiai_fulfillment.config import (
    SETTINGS_JSON_ENV,
    ServerConfig,
    Settings,
    WebhookConfig,
    get_settings,
    load_settings,
)

ENV_VARS = [
    "APP_ENV",
    "APIAI_HOST",
    "APIAI_PORT",
    "APIAI_LOG_LEVEL",
    "APIAI_WEBHOOK_PATH",
    "APIAI_CONFIG_FILE",
    SETTINGS_JSON_ENV,
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in ENV_VARS:
        # setenv first so anything written to os.environ directly is undone
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults(tmp_path) -> None:
    settings = load_settings(str(tmp_path / "missing.yaml"))
    assert settings.server.port == 8080
    assert settings.webhook.path == "/"
    assert settings.webhook.unknown_intent_status == 500
    assert settings.intents["double"].handler == "double"


def test_yaml_file(tmp_path) -> None:
    path = tmp_path / "apiai.yaml"
    path.write_text(
        "server:\n  port: 9000\n"
        "webhook:\n  path: hook\n  unknown_intent_status: 404\n"
        "intents:\n  greet:\n    handler: greet\n",
        encoding="utf-8",
    )
    settings = load_settings(str(path))
    assert settings.server.port == 9000
    assert settings.webhook.path == "/hook"
    assert settings.webhook.unknown_intent_status == 404
    assert list(settings.intents) == ["greet"]


def test_config_file_from_env(tmp_path, monkeypatch) -> None:
    path = tmp_path / "custom.yaml"
    path.write_text("logging:\n  level: DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("APIAI_CONFIG_FILE", str(path))
    assert load_settings().logging.level == "DEBUG"


def test_env_overrides_yaml(tmp_path, monkeypatch) -> None:
    path = tmp_path / "apiai.yaml"
    path.write_text("server:\n  port: 9000\n", encoding="utf-8")
    monkeypatch.setenv("APIAI_PORT", "9100")
    monkeypatch.setenv("APIAI_WEBHOOK_PATH", "/fulfill")
    monkeypatch.setenv("APP_ENV", "prod")
    settings = load_settings(str(path))
    assert settings.server.port == 9100
    assert settings.webhook.path == "/fulfill"
    assert settings.meta.environment == "prod"


def test_invalid_yaml_is_ignored(tmp_path) -> None:
    path = tmp_path / "apiai.yaml"
    path.write_text("server: [unclosed\n", encoding="utf-8")
    assert load_settings(str(path)) == Settings()


def test_unknown_intent_status_must_be_error() -> None:
    with pytest.raises(ValidationError):
        WebhookConfig(unknown_intent_status=200)


def test_empty_sections_with_env_overrides(tmp_path, monkeypatch) -> None:
    path = tmp_path / "apiai.yaml"
    path.write_text("meta:\nserver:\nlogging:\nwebhook:\n", encoding="utf-8")
    monkeypatch.setenv("APIAI_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("APIAI_WEBHOOK_PATH", "/hook")
    monkeypatch.setenv("APP_ENV", "staging")
    settings = load_settings(str(path))
    assert settings.logging.level == "WARNING"
    assert settings.webhook.path == "/hook"
    assert settings.meta.environment == "staging"


def test_empty_sections_without_overrides(tmp_path) -> None:
    path = tmp_path / "apiai.yaml"
    path.write_text("logging:\nwebhook:\n", encoding="utf-8")
    settings = load_settings(str(path))
    assert settings.logging.level == "INFO"
    assert settings.webhook.path == "/"


def test_get_settings_prefers_serialized_settings(monkeypatch) -> None:
    expected = Settings(webhook=WebhookConfig(path="/from-parent", unknown_intent_status=404))
    monkeypatch.setenv(SETTINGS_JSON_ENV, expected.model_dump_json())
    get_settings.cache_clear()
    try:
        assert get_settings() == expected
    finally:
        get_settings.cache_clear()


def test_run_hands_settings_to_worker_processes(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(main, "configure_logging", lambda settings: None)
    settings = Settings(
        server=ServerConfig(port=9001, workers=2),
        webhook=WebhookConfig(path="/workers"),
    )

    main.run(settings)

    app, kwargs = calls[0]
    assert app == "apiai_fulfillment.main:create_worker_app"
    assert kwargs["factory"] is True
    assert kwargs["workers"] == 2
    assert Settings.model_validate_json(os.environ[SETTINGS_JSON_ENV]) == settings

    # what a worker process would build from the inherited environment
    get_settings.cache_clear()
    try:
        worker_app = main.create_worker_app()
    finally:
        get_settings.cache_clear()
    assert worker_app.state.settings == settings
    paths = {getattr(route, "path", "") for route in worker_app.router.routes}
    assert "/workers" in paths


def test_run_single_process_uses_given_settings(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))
    monkeypatch.setattr(main, "configure_logging", lambda settings: None)
    settings = Settings(server=ServerConfig(port=9002))

    main.run(settings)

    app, kwargs = calls[0]
    assert app.state.settings is settings
    assert kwargs == {"host": "0.0.0.0", "port": 9002}
    assert SETTINGS_JSON_ENV not in os.environ
