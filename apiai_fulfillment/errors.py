"""
Failures of a single webhook call. Each carries the HTTP status it is
reported with; the app renders them as plain-text responses.
"""
from __future__ import annotations

from typing import Optional


class FulfillmentError(Exception):
    prefix = ""
    default_status = 500

    def __init__(self, detail: str, status_code: Optional[int] = None) -> None:
        self.detail = detail
        self.status_code = status_code or self.default_status
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return self.prefix + self.detail


class RequestDecodeError(FulfillmentError):
    prefix = "could not decode request: "
    default_status = 400


class IntentNotFoundError(FulfillmentError):
    prefix = "could not find handler for "

    def __init__(self, intent: str, status_code: Optional[int] = None) -> None:
        self.intent = intent
        super().__init__(intent, status_code)


class IntentHandlerError(FulfillmentError):
    prefix = "error processing intent: "


class ResponseEncodeError(FulfillmentError):
    prefix = "could not encode response: "
