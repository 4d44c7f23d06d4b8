"""Shared fixtures: every test gets its own registry and app."""
from __future__ import annotations

import copy

import pytest
from fastapi.testclient import TestClient

from apiai_fulfillment.config import Settings
from apiai_fulfillment.core.intent_registry import IntentRegistry
from apiai_fulfillment.main import create_app

SAMPLE_ENVELOPE = {
    "id": "7811ac58-5bd5-4e44-8d06-6cd8c67f5406",
    "timestamp": "2017-02-09T16:06:01.908Z",
    "lang": "en",
    "result": {
        "source": "agent",
        "resolvedQuery": "double 21",
        "speech": "",
        "action": "double.number",
        "actionIncomplete": False,
        "parameters": {"num": "21"},
        "contexts": [{"name": "numbers", "parameters": {"num": "21"}, "lifespan": 5}],
        "metadata": {
            "intentId": "6c3f1b2a-0000-4d5e-9f00-1234567890ab",
            "webhookUsed": "true",
            "webhookForSlotFillingUsed": "false",
            "intentName": "double",
        },
        "fulfillment": {"speech": "", "messages": [{"type": 0, "speech": ""}]},
        "score": 1,
    },
    "status": {"code": 200, "errorType": "success"},
    "sessionId": "1486656220806",
    "originalRequest": {"source": "google", "data": {"user": {"locale": "en-US"}, "isInSandbox": True}},
}


def make_envelope(intent: str = "double", **params: str) -> dict:
    env = copy.deepcopy(SAMPLE_ENVELOPE)
    env["result"]["metadata"]["intentName"] = intent
    if params:
        env["result"]["parameters"] = dict(params)
    return env


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def registry() -> IntentRegistry:
    return IntentRegistry()


@pytest.fixture
def client(settings: Settings, registry: IntentRegistry) -> TestClient:
    return TestClient(create_app(settings, registry))
