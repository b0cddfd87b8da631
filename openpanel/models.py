"""
OpenPanel SDK Data Models
=========================

Pydantic models for the event payloads sent to ``/track``.

Every event travels as ``{"type": <tag>, "payload": {...}}``. Payload fields
are camelCase on the wire and snake_case in Python.
"""

import json
from typing import Annotated, Any, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, JsonValue, ValidationError
from pydantic.alias_generators import to_camel

from openpanel.exceptions import EncodingError


Properties = Dict[str, JsonValue]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class TrackPayload(_WireModel):
    """A named event with optional properties."""
    name: str
    properties: Optional[Properties] = None
    profile_id: Optional[str] = None  # stamped at send time when missing


class IdentifyPayload(_WireModel):
    """Profile traits for a known user."""
    profile_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    properties: Optional[Properties] = None

    def has_traits(self) -> bool:
        """True when there is something to write to the profile."""
        if self.first_name or self.last_name or self.email or self.avatar:
            return True
        return bool(self.properties)


class AliasPayload(_WireModel):
    profile_id: str
    alias: str


class IncrementPayload(_WireModel):
    profile_id: str
    property: str
    value: Optional[int] = None


class DecrementPayload(_WireModel):
    profile_id: str
    property: str
    value: Optional[int] = None


class TrackEvent(_WireModel):
    type: Literal["track"] = "track"
    payload: TrackPayload


class IncrementEvent(_WireModel):
    type: Literal["increment"] = "increment"
    payload: IncrementPayload


class DecrementEvent(_WireModel):
    type: Literal["decrement"] = "decrement"
    payload: DecrementPayload


class AliasEvent(_WireModel):
    type: Literal["alias"] = "alias"
    payload: AliasPayload


class IdentifyEvent(_WireModel):
    type: Literal["identify"] = "identify"
    payload: IdentifyPayload


Event = Annotated[
    Union[TrackEvent, IncrementEvent, DecrementEvent, AliasEvent, IdentifyEvent],
    Field(discriminator="type"),
]

EVENT_TYPES: Dict[str, Type[_WireModel]] = {
    "track": TrackEvent,
    "increment": IncrementEvent,
    "decrement": DecrementEvent,
    "alias": AliasEvent,
    "identify": IdentifyEvent,
}


def encode_event(event: Event) -> bytes:
    """Serialize an event to its wire JSON. Unset optional fields are omitted."""
    try:
        return event.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    except (ValueError, TypeError) as e:
        raise EncodingError(f"Cannot encode {getattr(event, 'type', type(event).__name__)} event: {e}") from e


def decode_event(data: Union[bytes, str, Dict[str, Any]]) -> Event:
    """Parse wire JSON (or an already-loaded dict) back into an event."""
    if isinstance(data, (bytes, str)):
        try:
            data = json.loads(data)
        except ValueError as e:
            raise EncodingError(f"Invalid event JSON: {e}") from e

    if not isinstance(data, dict):
        raise EncodingError(f"Event must be a JSON object, got {type(data).__name__}")

    tag = data.get("type")
    event_cls = EVENT_TYPES.get(tag)
    if event_cls is None:
        raise EncodingError(f"Unknown event type: {tag!r}")

    try:
        return event_cls.model_validate(data)
    except ValidationError as e:
        raise EncodingError(f"Invalid {tag} event: {e}") from e


def merge_properties(
    base: Optional[Properties],
    override: Optional[Properties],
) -> Properties:
    """Shallow merge; keys in ``override`` win."""
    merged: Properties = dict(base or {})
    if override:
        merged.update(override)
    return merged


def with_profile_id(event: Event, profile_id: Optional[str]) -> Event:
    """Stamp a track event that has no profile id yet. Other events pass through."""
    if not isinstance(event, TrackEvent) or event.payload.profile_id is not None or profile_id is None:
        return event
    payload = event.payload.model_copy(update={"profile_id": profile_id})
    return event.model_copy(update={"payload": payload})
