"""
OpenPanel Python SDK
====================

Client for sending analytics events to OpenPanel.

Quick Start:
    from openpanel import OpenPanel

    op = OpenPanel(client_id="your-client-id")

    # Track an event
    op.track("signup_completed", {"plan": "pro"})

    # Identify the user
    op.identify("user-42", first_name="Jane", email="jane@example.com")

    # Wait for delivery before exiting
    op.close()

For more information, visit: https://openpanel.dev/docs
"""

import logging

from openpanel.client import OpenPanel
from openpanel.config import DEFAULT_API_URL, OpenPanelOptions, OpenPanelSettings
from openpanel.models import (
    AliasEvent,
    AliasPayload,
    DecrementEvent,
    DecrementPayload,
    Event,
    IdentifyEvent,
    IdentifyPayload,
    IncrementEvent,
    IncrementPayload,
    TrackEvent,
    TrackPayload,
    decode_event,
    encode_event,
)
from openpanel.exceptions import (
    OpenPanelError,
    ConfigurationError,
    EncodingError,
    TransportError,
    HTTPStatusError,
)
from openpanel.version import SDK_NAME, SDK_VERSION

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = SDK_VERSION
__all__ = [
    "OpenPanel",
    "OpenPanelOptions",
    "OpenPanelSettings",
    "DEFAULT_API_URL",
    "Event",
    "TrackEvent",
    "TrackPayload",
    "IdentifyEvent",
    "IdentifyPayload",
    "AliasEvent",
    "AliasPayload",
    "IncrementEvent",
    "IncrementPayload",
    "DecrementEvent",
    "DecrementPayload",
    "encode_event",
    "decode_event",
    "OpenPanelError",
    "ConfigurationError",
    "EncodingError",
    "TransportError",
    "HTTPStatusError",
    "SDK_NAME",
    "SDK_VERSION",
]
