"""Route api.ai fulfillment webhooks to per-intent handlers."""
from apiai_fulfillment.core.intent_registry import IntentRegistry
from apiai_fulfillment.main import create_app
from apiai_fulfillment.schemas import WebhookRequest, WebhookResponse

__all__ = ["IntentRegistry", "WebhookRequest", "WebhookResponse", "create_app"]
