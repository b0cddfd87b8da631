"""Pytest configuration.

Clients under test talk to an in-process ``httpx.MockTransport`` that records
every request, so no test touches the network. ``OPENPANEL_*`` variables from
the developer's shell are removed so option defaults stay predictable.
"""

import asyncio
import json
import os
import threading
from typing import Any, Dict, List

import httpx
import pytest

from openpanel import OpenPanel


@pytest.fixture(autouse=True)
def _clean_openpanel_env(monkeypatch):
    for key in list(os.environ):
        if key.upper().startswith("OPENPANEL_"):
            monkeypatch.delenv(key, raising=False)


class RecordingAPI:
    """Fake OpenPanel ingest endpoint."""

    def __init__(self, status_code: int = 200, latency: float = 0.0):
        self.status_code = status_code
        self.latency = latency
        self.requests: List[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()

    async def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.latency:
                await asyncio.sleep(self.latency)
            return httpx.Response(self.status_code, json={"ok": True})
        finally:
            with self._lock:
                self.in_flight -= 1

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def bodies(self) -> List[Dict[str, Any]]:
        with self._lock:
            return [json.loads(r.content) for r in self.requests]

    @property
    def names(self) -> List[str]:
        return [b["payload"].get("name") for b in self.bodies if b["type"] == "track"]


@pytest.fixture
def api():
    return RecordingAPI()


@pytest.fixture
def make_client(api):
    """Factory for clients wired to the recording API; closed after the test."""
    clients: List[OpenPanel] = []

    def _make(**fields) -> OpenPanel:
        fields.setdefault("client_id", "test-client")
        fields.setdefault("user_agent", "test-agent/1.0")
        client = OpenPanel(http_transport=api.transport(), **fields)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.close(timeout=5)
