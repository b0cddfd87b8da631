"""
OpenPanel SDK Client
====================

Main client class for sending analytics events to OpenPanel.
"""

import logging
from functools import partial
from typing import Any, Dict, Optional, Type

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from openpanel.config import OpenPanelOptions
from openpanel.device import get_user_agent
from openpanel.dispatch import DeliveryWorker, EventPipeline
from openpanel.exceptions import EncodingError
from openpanel.lifecycle import ProcessLifecycle
from openpanel.models import (
    AliasEvent,
    AliasPayload,
    DecrementEvent,
    DecrementPayload,
    IdentifyEvent,
    IdentifyPayload,
    IncrementEvent,
    IncrementPayload,
    Properties,
    TrackEvent,
    TrackPayload,
    merge_properties,
)
from openpanel.pending import PendingQueue
from openpanel.state import ProfileState
from openpanel.transport import Transport
from openpanel.version import SDK_NAME, SDK_VERSION


logger = logging.getLogger(__name__)

_properties_adapter = TypeAdapter(Properties)


class OpenPanel:
    """
    OpenPanel analytics client.

    Every tracking method returns immediately. Events are delivered one at a
    time, in call order, by a background worker; delivery errors are logged
    and never raised to the caller.

    Example:
        from openpanel import OpenPanel

        op = OpenPanel(client_id="your-client-id", wait_for_profile=True)
        op.set_global_properties({"app_version": "1.4.2"})

        op.track("checkout_started", {"cart_size": 3})  # held until identify
        op.identify("user-42", email="jane@example.com")

        op.increment("user-42", "logins")
        op.close()
    """

    EXIT_TIMEOUT_SECONDS = 5.0

    def __init__(
        self,
        options: Optional[OpenPanelOptions] = None,
        *,
        http_transport: Optional[httpx.AsyncBaseTransport] = None,
        **option_fields: Any,
    ):
        """
        Initialize the OpenPanel client.

        Args:
            options: Complete client options; when omitted they are built from
                ``option_fields`` plus ``OPENPANEL_*`` environment variables
            http_transport: httpx transport override (tests, proxies)
            **option_fields: Any ``OpenPanelOptions`` field, e.g. ``client_id``
        """
        if options is None:
            options = OpenPanelOptions.from_env(**option_fields)
        elif option_fields:
            options = OpenPanelOptions(**{**options.model_dump(), **option_fields})
        self.options = options

        headers = {
            "openpanel-client-id": options.client_id,
            "openpanel-sdk-name": SDK_NAME,
            "openpanel-sdk-version": SDK_VERSION,
            "user-agent": options.user_agent or get_user_agent(),
        }
        if options.client_secret:
            headers["openpanel-client-secret"] = options.client_secret

        self._transport = Transport(
            options.api_url,
            headers,
            max_retries=options.max_retries,
            initial_retry_delay=options.initial_retry_delay,
            timeout=options.timeout,
            http_transport=http_transport,
        )
        self._state = ProfileState()
        self._pending = PendingQueue()
        self._worker = DeliveryWorker(self._transport)
        self._pipeline = EventPipeline(
            self._worker,
            self._state,
            self._pending,
            disabled=options.disabled,
            filter=options.filter,
            wait_for_profile=options.wait_for_profile,
        )

        self._lifecycle: Optional[ProcessLifecycle] = None
        if options.automatic_tracking:
            self._lifecycle = ProcessLifecycle(
                self,
                on_exit=partial(self.close, timeout=self.EXIT_TIMEOUT_SECONDS),
            )
            self._lifecycle.install()

    @property
    def profile_id(self) -> Optional[str]:
        """The currently identified user, if any."""
        return self._state.profile_id

    @property
    def global_properties(self) -> Optional[Properties]:
        """Snapshot of the properties merged into every tracked event."""
        return self._state.global_properties()

    @property
    def wait_for_profile(self) -> bool:
        return self._pipeline.wait_for_profile

    @property
    def pending_count(self) -> int:
        """Events held back until ``identify`` or ``ready``."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------
    def track(self, name: str, properties: Optional[Dict[str, Any]] = None) -> None:
        """
        Track a named event.

        Global properties act as defaults; ``properties`` override them on
        key collision. A string ``profileId`` property is used as the event's
        profile id instead of the identified user.
        """
        explicit_profile_id = None
        if properties and isinstance(properties.get("profileId"), str):
            explicit_profile_id = properties["profileId"]

        self._send(
            TrackEvent,
            TrackPayload,
            name=name,
            properties=self._state.merged_with(properties),
            profile_id=explicit_profile_id or self._state.profile_id,
        )

    def identify(
        self,
        profile_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        avatar: Optional[str] = None,
        properties: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Set the current user and release any events held for it.

        An ``identify`` event is only sent when there are traits to record
        (a name, email, avatar or non-empty properties). Global properties
        are merged under the payload's own properties.
        """
        payload = self._build(
            IdentifyPayload,
            profile_id=profile_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            avatar=avatar,
            properties=properties,
        )
        if payload is None:
            return

        released = self._pipeline.release(partial(self._state.set_profile_id, payload.profile_id))
        if released:
            logger.debug("Released %d held events", released)

        if not payload.has_traits():
            return

        global_properties = self._state.global_properties()
        if global_properties is not None:
            payload = payload.model_copy(
                update={"properties": merge_properties(global_properties, payload.properties)}
            )
        self._pipeline.submit(IdentifyEvent(payload=payload))

    def alias(self, profile_id: str, alias: str) -> None:
        """Link another identifier to a profile."""
        self._send(AliasEvent, AliasPayload, profile_id=profile_id, alias=alias)

    def increment(self, profile_id: str, property: str, value: Optional[int] = None) -> None:
        """Increment a numeric profile property (by 1 server-side when ``value`` is omitted)."""
        self._send(IncrementEvent, IncrementPayload, profile_id=profile_id, property=property, value=value)

    def decrement(self, profile_id: str, property: str, value: Optional[int] = None) -> None:
        """Decrement a numeric profile property (by 1 server-side when ``value`` is omitted)."""
        self._send(DecrementEvent, DecrementPayload, profile_id=profile_id, property=property, value=value)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    def set_global_properties(self, properties: Dict[str, Any]) -> None:
        """Merge ``properties`` into the globals sent with every event."""
        try:
            validated = _properties_adapter.validate_python(properties)
        except ValidationError as e:
            logger.error("Ignoring global properties: %s", EncodingError(str(e)))
            return
        self._state.merge_global_properties(validated)

    def clear(self) -> None:
        """Forget the current user and all global properties."""
        self._state.reset()

    def flush(self) -> None:
        """Send every event held while waiting for a profile id."""
        released = self._pipeline.release()
        if released:
            logger.debug("Released %d held events", released)

    def ready(self) -> None:
        """Stop waiting for a profile id and send everything held so far."""
        released = self._pipeline.stop_waiting()
        if released:
            logger.debug("Released %d held events", released)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def on_foreground_first_activation(self) -> None:
        self.track("app_opened")

    def on_background_all_inactive(self) -> None:
        self.track("app_closed")

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every accepted event has been delivered or has failed.

        Returns:
            bool: False if ``timeout`` expired first
        """
        return self._worker.join(timeout)

    def close(self, timeout: Optional[float] = None) -> None:
        """Deliver what is already accepted, then stop the background worker."""
        if self._lifecycle is not None:
            self._lifecycle.uninstall()
        held = len(self._pending)
        if held:
            logger.warning("Closing with %d events still waiting for a profile id", held)
        self._worker.close(timeout)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - drain and stop the worker."""
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _build(self, payload_cls: Type[BaseModel], **fields: Any) -> Optional[BaseModel]:
        try:
            return payload_cls(**fields)
        except ValidationError as e:
            logger.error("Dropping %s: %s", payload_cls.__name__, EncodingError(str(e)))
            return None

    def _send(self, event_cls: Type[BaseModel], payload_cls: Type[BaseModel], **fields: Any) -> None:
        payload = self._build(payload_cls, **fields)
        if payload is not None:
            self._pipeline.submit(event_cls(payload=payload))
