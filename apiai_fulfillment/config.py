"""
Centralized configuration for the fulfillment webhook.
- Loads from environment variables and an optional YAML file.
- Provides typed settings via Pydantic models.
- Exposes a helper for logging.
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
import yaml

# Ensure .env is loaded early
load_dotenv()

CONFIG_FILE_ENV = "APIAI_CONFIG_FILE"
# serialized Settings handed to uvicorn reload/worker processes
SETTINGS_JSON_ENV = "APIAI_SETTINGS_JSON"
DEFAULT_CONFIG_FILE = "apiai.yaml"


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080
    reload: bool = False
    workers: int = 1


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_format: bool = False
    slow_request_threshold_ms: int = 1200


class WebhookConfig(BaseModel):
    path: str = "/"
    # status returned when no handler is registered for the intent
    unknown_intent_status: int = 500

    @field_validator("path")
    def _validate_path(cls, v: str) -> str:
        return v if v.startswith("/") else "/" + v

    @field_validator("unknown_intent_status")
    def _validate_status(cls, v: int) -> int:
        if not 400 <= v <= 599:
            raise ValueError("unknown_intent_status must be an HTTP error status")
        return v


class IntentConfig(BaseModel):
    handler: Optional[str] = None
    description: str = ""


class AppMeta(BaseModel):
    app_name: str = "api.ai Fulfillment Webhook"
    environment: str = Field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    version: str = "0.1.0"


def _default_intents() -> Dict[str, IntentConfig]:
    return {"double": IntentConfig(handler="double", description="Doubles the 'num' parameter")}


class Settings(BaseModel):
    meta: AppMeta = Field(default_factory=AppMeta)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    webhook: WebhookConfig = Field(default_factory=WebhookConfig)
    intents: Dict[str, IntentConfig] = Field(default_factory=_default_intents)


def _load_yaml_config(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError:
            return {}
    return data if isinstance(data, dict) else {}


def _section(cfg: dict, name: str) -> dict:
    # an empty YAML section ("logging:") loads as None
    section = cfg.get(name)
    if not isinstance(section, dict):
        section = cfg[name] = {}
    return section


def _env_override(cfg: dict) -> dict:
    """Optionally override select fields from env; keep simple to avoid surprises."""
    if os.getenv("APP_ENV"):
        _section(cfg, "meta")["environment"] = os.getenv("APP_ENV")

    server_cfg = _section(cfg, "server")
    for k_env, key in [
        ("APIAI_HOST", "host"),
        ("APIAI_PORT", "port"),
    ]:
        val = os.getenv(k_env)
        if val is not None:
            server_cfg[key] = val

    level = os.getenv("APIAI_LOG_LEVEL")
    if level is not None:
        _section(cfg, "logging")["level"] = level

    path = os.getenv("APIAI_WEBHOOK_PATH")
    if path is not None:
        _section(cfg, "webhook")["path"] = path

    return cfg


def load_settings(path: Optional[str] = None) -> Settings:
    base_cfg = _load_yaml_config(path or os.getenv(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE))
    merged = {k: v for k, v in _env_override(base_cfg).items() if v is not None}
    # Pydantic will coerce nested dicts into typed models
    return Settings(**merged)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    raw = os.getenv(SETTINGS_JSON_ENV)
    if raw:
        return Settings.model_validate_json(raw)
    return load_settings()


# ---- Helpers ---------------------------------------------------------------

def configure_logging(settings: Settings) -> None:
    import logging
    import sys

    console = logging.StreamHandler(sys.stdout)

    logging.basicConfig(
        level=settings.logging.level.upper(),
        format=(
            "%(message)s"
            if settings.logging.json_format
            else "%(asctime)s %(levelname)s %(name)s - %(message)s"
        ),
        handlers=[console],
    )
