from __future__ import annotations

import inspect
import logging
from typing import Any, Mapping, Optional

from fastapi import APIRouter, Request
from fastapi.responses import Response
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from starlette.concurrency import run_in_threadpool

from apiai_fulfillment.config import Settings
from apiai_fulfillment.core.intent_registry import HandlerFunc, IntentRegistry
from apiai_fulfillment.errors import (
    IntentHandlerError,
    IntentNotFoundError,
    RequestDecodeError,
    ResponseEncodeError,
)
from apiai_fulfillment.schemas import WebhookRequest, WebhookResponse

logger = logging.getLogger("dynamic_router")


def decode_request(body: bytes) -> WebhookRequest:
    try:
        return WebhookRequest.model_validate_json(body)
    except ValidationError as e:
        raise RequestDecodeError(_describe(e)) from e


def encode_response(result: Any) -> str:
    if isinstance(result, WebhookResponse):
        res = result
    elif isinstance(result, Mapping):
        try:
            res = WebhookResponse.model_validate(dict(result))
        except ValidationError as e:
            raise ResponseEncodeError(_describe(e)) from e
    else:
        raise ResponseEncodeError(f"unsupported response type {type(result).__name__}")
    try:
        return res.to_json()
    except (PydanticSerializationError, ValueError) as e:
        raise ResponseEncodeError(str(e)) from e


async def invoke(handler: HandlerFunc, req: WebhookRequest, http_request: Optional[Request]) -> Any:
    if inspect.iscoroutinefunction(handler):
        return await handler(req, http_request)
    result = await run_in_threadpool(handler, req, http_request)
    if inspect.isawaitable(result):
        result = await result
    return result


async def dispatch(
    registry: IntentRegistry,
    req: WebhookRequest,
    http_request: Optional[Request] = None,
    unknown_intent_status: int = 500,
) -> str:
    """Route ``req`` to its intent handler and return the encoded response body."""
    intent = req.intent_name
    handler, ok = registry.lookup(intent)
    if not ok:
        raise IntentNotFoundError(intent, unknown_intent_status)

    try:
        result = await invoke(handler, req, http_request)
    except Exception as e:
        logger.exception(f"Handler for intent '{intent}' failed")
        raise IntentHandlerError(str(e)) from e

    return encode_response(result)


def build_router(settings: Settings) -> APIRouter:
    router = APIRouter(tags=["fulfillment"])

    @router.post(settings.webhook.path)
    async def fulfill(request: Request) -> Response:
        req = decode_request(await request.body())
        logger.info(f"Intent: {req.intent_name} | Session: {req.session_id} | Params: {req.result.parameters}")
        body = await dispatch(
            request.app.state.registry,
            req,
            request,
            settings.webhook.unknown_intent_status,
        )
        return Response(content=body, media_type="application/json")

    @router.get("/healthz")
    async def healthz(request: Request) -> dict:
        return {"status": "ok", "intents": request.app.state.registry.intents()}

    return router


def _describe(e: ValidationError) -> str:
    err = e.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]
