from __future__ import annotations

import re
from typing import Optional

from starlette.requests import Request

from .base import ensure_params
from apiai_fulfillment.schemas import WebhookRequest, WebhookResponse

# plain ASCII decimal integers only; int() would also take "2_1", " 21 " and non-ASCII digits
INTEGER = re.compile(r"[+-]?[0-9]+")


def handle(req: WebhookRequest, http_request: Optional[Request] = None) -> WebhookResponse:
    ensure_params(req, ["num"])
    raw = req.param("num")
    if not INTEGER.fullmatch(raw):
        raise ValueError(f"could not parse number '{raw}': not a decimal integer")
    num = int(raw)
    return WebhookResponse(speech=f"{num} times two equals {2 * num}")
