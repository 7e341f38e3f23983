"""Pytest fixtures: a fake Thunderbird extension behind httpx.MockTransport."""

import json

import httpx
import pytest

from thunderbird_bridge.config import Settings
from thunderbird_bridge.core.router import Router
from thunderbird_bridge.services.backend_client import BackendClient


class FakeExtension:
    """Records every JSON-RPC payload posted to it and answers via ``handler``."""

    def __init__(self):
        self.requests = []
        self.http_requests = []
        self.handler = self.echo

    @staticmethod
    def echo(payload):
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload.get("id"), "result": payload.get("params")})

    def reply(self, body, status_code=200):
        """Answer every call with ``body`` (a dict is encoded as JSON, a str is sent raw)."""
        def _handler(_payload):
            if isinstance(body, str):
                return httpx.Response(status_code, content=body.encode("utf-8"))
            return httpx.Response(status_code, json=body)
        self.handler = _handler

    def fail_with(self, exc):
        def _handler(_payload):
            raise exc
        self.handler = _handler

    def __call__(self, request: httpx.Request):
        self.http_requests.append(request)
        payload = json.loads(request.content)
        self.requests.append(payload)
        return self.handler(payload)


@pytest.fixture
def settings():
    return Settings(backend_url="http://localhost:8766/", request_timeout=5.0)


@pytest.fixture
def extension():
    return FakeExtension()


@pytest.fixture
def backend(settings, extension):
    client = BackendClient(settings, transport=httpx.MockTransport(extension))
    yield client
    client.close()


@pytest.fixture
def router(backend, settings):
    return Router(backend, settings)
