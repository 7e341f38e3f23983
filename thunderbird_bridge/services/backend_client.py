import json
import time
import httpx
import logging
from typing import Any, Optional

from pydantic import ValidationError

from thunderbird_bridge.config import Settings, get_settings
from thunderbird_bridge.core.sanitizer import sanitize_json
from thunderbird_bridge.models import (
    INTERNAL_ERROR,
    PARSE_ERROR,
    JsonRpcRequest,
    JsonRpcResponse,
    loads_strict,
)

logger = logging.getLogger(__name__)

# Placeholder id for value-level calls made outside of an MCP session
CALL_TOOL_ID = 1


class BackendError(Exception):
    """Raised by value-level calls when the extension reports a failure."""


class BackendClient:
    """
    Synchronous JSON-RPC client for the Thunderbird API extension.

    One httpx.Client is created per bridge process and reused for every
    request. ``send`` never raises: each failure mode is folded into an
    error response carrying the request's id.
    """
    def __init__(self, settings: Optional[Settings] = None, transport: Optional[httpx.BaseTransport] = None):
        settings = settings or get_settings()
        self.url = settings.backend_url
        self.timeout = settings.request_timeout
        # httpx never raises on HTTP status unless asked to, so a 500 with a
        # JSON-RPC error body is read like any other response.
        self.client = httpx.Client(timeout=settings.request_timeout, transport=transport)

    def send(self, request: JsonRpcRequest) -> JsonRpcResponse:
        """
        Posts the request to the extension and returns its parsed response.
        """
        req_id = request.id

        try:
            body = json.dumps(request.to_wire(), separators=(",", ":"), allow_nan=False)
        except (TypeError, ValueError) as exc:
            return JsonRpcResponse.error_response(
                req_id, PARSE_ERROR, f"Failed to serialize request: {exc}"
            )

        logger.debug(f"-> {self.url} {request.method}")
        # httpx timeouts apply per phase, so the total budget is enforced here
        deadline = time.monotonic() + self.timeout

        try:
            with self.client.stream(
                "POST",
                self.url,
                content=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            ) as response:
                try:
                    chunks = []
                    timed_out = time.monotonic() > deadline
                    if not timed_out:
                        for chunk in response.iter_bytes():
                            chunks.append(chunk)
                            if time.monotonic() > deadline:
                                timed_out = True
                                break
                    data = b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")
                except httpx.HTTPError as exc:
                    logger.warning(f"Failed to read response for {request.method}: {exc}")
                    return JsonRpcResponse.error_response(
                        req_id, INTERNAL_ERROR, f"Failed to read response body: {exc}"
                    )
        except httpx.HTTPError as exc:
            logger.warning(f"Network Error forwarding to {self.url}: {exc}")
            return JsonRpcResponse.error_response(
                req_id,
                INTERNAL_ERROR,
                f"Connection failed: {exc}. Is Thunderbird running with the API extension?",
            )

        if timed_out:
            logger.warning(f"{request.method} exceeded the {self.timeout:g}s request budget")
            return JsonRpcResponse.error_response(
                req_id, INTERNAL_ERROR, f"Request to Thunderbird timed out after {self.timeout:g}s"
            )

        return self._parse_response(req_id, data)

    def _parse_response(self, req_id: Any, data: str) -> JsonRpcResponse:
        try:
            return JsonRpcResponse.model_validate(loads_strict(data))
        except (ValueError, ValidationError):
            pass

        # Raw control characters inside strings are the usual culprit
        logger.warning("Extension returned invalid JSON, retrying with sanitized body")
        try:
            return JsonRpcResponse.model_validate(loads_strict(sanitize_json(data)))
        except ValidationError as exc:
            detail = _first_error(exc)
        except ValueError as exc:
            detail = str(exc)
        return JsonRpcResponse.error_response(
            req_id, PARSE_ERROR, f"Invalid JSON from Thunderbird: {detail}"
        )

    def call_tool(self, name: str, args: Any) -> Any:
        """
        Calls a tool on the extension and returns its bare result.

        Raises BackendError with the extension's message on failure.
        """
        request = JsonRpcRequest(id=CALL_TOOL_ID, method=name, params=args)
        response = self.send(request)

        if response.error is not None:
            raise BackendError(response.error.message)
        if response.result is None:
            raise BackendError("No result in response")
        return response.result

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{first['msg']} at {loc}" if loc else first["msg"]
