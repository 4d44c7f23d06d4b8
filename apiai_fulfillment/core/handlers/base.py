from __future__ import annotations

from typing import Iterable

from apiai_fulfillment.schemas import WebhookRequest


def ensure_params(req: WebhookRequest, names: Iterable[str]) -> None:
    """Validate required parameters are present; raise ValueError if missing."""
    missing = [name for name in names if not req.param(name)]
    if missing:
        raise ValueError("Missing required parameter(s): " + ", ".join(missing))
