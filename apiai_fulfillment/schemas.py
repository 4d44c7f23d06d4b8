"""
Wire models for api.ai fulfillment webhooks.

Every inbound field is optional and falls back to its zero value; unknown
fields are ignored. Payload sections whose shape the platform does not pin
down (contexts, fulfillment messages, original request data) are kept as
opaque JSON values.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    JsonValue,
    PlainSerializer,
    model_validator,
)
from pydantic.alias_generators import to_camel


def _parse_string_bool(value: Any) -> Any:
    # api.ai sends these flags as the strings "true" / "false".
    if isinstance(value, bool):
        return value
    if value == "true":
        return True
    if value == "false":
        return False
    raise ValueError(f"expected \"true\" or \"false\", got {value!r}")


StringBool = Annotated[
    bool,
    BeforeValidator(_parse_string_bool),
    PlainSerializer(lambda v: "true" if v else "false", return_type=str),
]


def _null_params_to_empty(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: "" if v is None else v for k, v in value.items()}
    return value


Parameters = Annotated[Dict[str, str], BeforeValidator(_null_params_to_empty)]


def _require_timestamp_string(value: Any) -> Any:
    # only RFC 3339 text; numeric epochs are not part of the wire format
    if isinstance(value, (str, datetime)):
        return value
    raise ValueError(f"expected an RFC 3339 timestamp string, got {type(value).__name__}")


Timestamp = Annotated[
    Optional[datetime],
    Field(strict=False),
    BeforeValidator(_require_timestamp_string),
]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        frozen=True,
        strict=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null leaves a field at its zero value
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Status(_WireModel):
    error_type: str = ""
    code: int = 0


class Fulfillment(_WireModel):
    speech: str = ""
    messages: List[JsonValue] = Field(default_factory=list)


class Metadata(_WireModel):
    intent_id: str = ""
    webhook_for_slot_filling_used: StringBool = False
    intent_name: str = ""
    webhook_used: StringBool = False


class Result(_WireModel):
    parameters: Parameters = Field(default_factory=dict)
    contexts: List[JsonValue] = Field(default_factory=list)
    resolved_query: str = ""
    source: str = ""
    score: float = 0.0
    speech: str = ""
    fulfillment: Fulfillment = Field(default_factory=Fulfillment)
    action_incomplete: bool = False
    action: str = ""
    metadata: Metadata = Field(default_factory=Metadata)


class OriginalRequest(_WireModel):
    source: str = ""
    data: Dict[str, JsonValue] = Field(default_factory=dict)


class WebhookRequest(_WireModel):
    """A single intent invocation as delivered by api.ai."""

    lang: str = ""
    status: Status = Field(default_factory=Status)
    timestamp: Timestamp = None
    session_id: str = ""
    result: Result = Field(default_factory=Result)
    id: str = ""
    original_request: OriginalRequest = Field(default_factory=OriginalRequest)

    @property
    def intent_name(self) -> str:
        return self.result.metadata.intent_name

    def param(self, name: str) -> str:
        """Return the value of the named parameter, or "" when it is absent."""
        return self.result.parameters.get(name, "")


class WebhookResponse(BaseModel):
    """What an intent handler answers; serialized back to api.ai verbatim."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    speech: str = ""
    display_text: str = ""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
