"""
MCP -> extension request routing.

Every inbound MCP request resolves to exactly one of three routes:

* ``Local``             answered by the bridge without touching the extension
                        (``response`` is None for notifications).
* ``TranslatedForward`` rewritten into the extension's direct-call dialect,
                        sent, and its result reshaped back into MCP form.
* ``VerbatimForward``   sent to the extension as-is, response returned as-is.

Adding a translated method is a single entry in ``TRANSLATIONS``.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from thunderbird_bridge.config import Settings, get_settings
from thunderbird_bridge.models import JsonRpcRequest, JsonRpcResponse
from thunderbird_bridge.services.backend_client import BackendClient

logger = logging.getLogger(__name__)

NOTIFICATION_PREFIX = "notifications/"


@dataclass(frozen=True)
class Local:
    response: Optional[JsonRpcResponse]


@dataclass(frozen=True)
class TranslatedForward:
    build_request: Callable[[JsonRpcRequest], JsonRpcRequest]
    reshape_response: Callable[[JsonRpcRequest, JsonRpcResponse], JsonRpcResponse]


@dataclass(frozen=True)
class VerbatimForward:
    pass


Route = Union[Local, TranslatedForward, VerbatimForward]


# ---------------------------------------------------------
# LOCAL HANDLERS
# ---------------------------------------------------------

def handle_initialize(req_id: Any, settings: Settings) -> JsonRpcResponse:
    """Fixed capability descriptor; the client's params are not inspected."""
    return JsonRpcResponse.success(req_id, {
        "protocolVersion": settings.protocol_version,
        "capabilities": {"tools": {}},
        "serverInfo": {
            "name": settings.server_name,
            "version": settings.server_version,
        },
    })


def handle_resources_list(req_id: Any) -> JsonRpcResponse:
    return JsonRpcResponse.success(req_id, {"resources": []})


def handle_prompts_list(req_id: Any) -> JsonRpcResponse:
    return JsonRpcResponse.success(req_id, {"prompts": []})


# ---------------------------------------------------------
# TRANSLATIONS
# ---------------------------------------------------------

def _tool_call_fields(params: Any):
    """Pull ``name`` and ``arguments`` out of tools/call params, defaulting bad or missing values."""
    if not isinstance(params, dict):
        params = {}
    name = params.get("name")
    if not isinstance(name, str):
        name = ""
    arguments = params.get("arguments")
    if not isinstance(arguments, dict):
        arguments = {}
    return name, arguments


def build_list_tools(request: JsonRpcRequest) -> JsonRpcRequest:
    return request.derive("listTools")


def build_tool_call(request: JsonRpcRequest) -> JsonRpcRequest:
    name, arguments = _tool_call_fields(request.params)
    return request.derive(name, arguments)


def passthrough_response(request: JsonRpcRequest, response: JsonRpcResponse) -> JsonRpcResponse:
    return response


def wrap_tool_result(request: JsonRpcRequest, response: JsonRpcResponse) -> JsonRpcResponse:
    """
    Wraps a tool result in a single MCP text content block.

    Errors and responses without a result go back unchanged.
    """
    if response.is_error or response.result is None:
        return response
    text = json.dumps(response.result, separators=(",", ":"), ensure_ascii=False)
    return JsonRpcResponse.success(request.id, {
        "content": [{"type": "text", "text": text}],
    })


TRANSLATIONS: Dict[str, TranslatedForward] = {
    "tools/list": TranslatedForward(build_list_tools, passthrough_response),
    "tools/call": TranslatedForward(build_tool_call, wrap_tool_result),
}


class Router:
    """
    Decides the route for each request and carries it out.

    Holds no per-request state; the settings and back-end client are fixed
    at construction.
    """
    def __init__(self, backend: BackendClient, settings: Optional[Settings] = None):
        self.backend = backend
        self.settings = settings or get_settings()

    def route(self, request: JsonRpcRequest) -> Route:
        method = request.method

        if method == "initialize":
            return Local(handle_initialize(request.id, self.settings))
        if method == "resources/list":
            return Local(handle_resources_list(request.id))
        if method == "prompts/list":
            return Local(handle_prompts_list(request.id))
        if method.startswith(NOTIFICATION_PREFIX):
            return Local(None)

        translation = TRANSLATIONS.get(method)
        if translation is not None:
            return translation
        return VerbatimForward()

    def dispatch(self, request: JsonRpcRequest) -> Optional[JsonRpcResponse]:
        """
        Returns the response to write back, or None when nothing must be written.
        """
        route = self.route(request)

        if isinstance(route, Local):
            if route.response is None:
                logger.debug(f"Notification received: {request.method}")
            response = route.response
        elif isinstance(route, TranslatedForward):
            outbound = route.build_request(request)
            logger.debug(f"Translated {request.method} -> {outbound.method}")
            response = route.reshape_response(request, self.backend.send(outbound))
        else:
            logger.debug(f"Forwarding {request.method} unchanged")
            response = self.backend.send(request)

        # Requests without an id are notifications whatever their method
        if request.is_notification:
            return None
        return response
