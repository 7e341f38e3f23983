import json
from pydantic import BaseModel, Field
from typing import Optional, Any, Dict

JSONRPC_VERSION = "2.0"

# Reserved JSON-RPC error codes produced by the bridge itself
PARSE_ERROR = -32700
INTERNAL_ERROR = -32603


class JsonRpcRequest(BaseModel):
    """
    JSON-RPC request envelope shared by the MCP side and the extension side.

    ``id`` may be a number, a string or null. A request whose ``id`` member is
    absent altogether is a notification and never gets a response.
    """
    jsonrpc: str = JSONRPC_VERSION
    method: str = Field(..., description="The name of the method to be invoked.")
    params: Optional[Any] = None
    id: Any = None

    @property
    def is_notification(self) -> bool:
        return "id" not in self.model_fields_set

    def derive(self, method: str, params: Any = None) -> "JsonRpcRequest":
        """Build a new request for ``method`` that keeps this request's id."""
        fields: Dict[str, Any] = {"method": method}
        if params is not None:
            fields["params"] = params
        if not self.is_notification:
            fields["id"] = self.id
        return JsonRpcRequest(**fields)

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"jsonrpc": self.jsonrpc}
        if not self.is_notification:
            wire["id"] = self.id
        wire["method"] = self.method
        if "params" in self.model_fields_set:
            wire["params"] = self.params
        return wire


class JsonRpcError(BaseModel):
    code: int
    message: str
    data: Optional[Any] = None

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"code": self.code, "message": self.message}
        if "data" in self.model_fields_set:
            wire["data"] = self.data
        return wire


class JsonRpcResponse(BaseModel):
    """
    JSON-RPC response envelope.

    On the wire exactly one of ``result``/``error`` is emitted; when an error
    is set it wins. ``id`` is always emitted, as null when unknown.
    """
    jsonrpc: str = JSONRPC_VERSION
    result: Optional[Any] = None
    error: Optional[JsonRpcError] = None
    id: Any = None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @classmethod
    def success(cls, req_id: Any, result: Any):
        return cls(id=req_id, result=result)

    @classmethod
    def error_response(cls, req_id: Any, code: int, message: str, data: Any = None):
        fields: Dict[str, Any] = {"code": code, "message": message}
        if data is not None:
            fields["data"] = data
        return cls(id=req_id, error=JsonRpcError(**fields))

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            wire["error"] = self.error.to_wire()
        else:
            wire["result"] = self.result
        return wire

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), separators=(",", ":"), ensure_ascii=False, allow_nan=False)


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def loads_strict(raw: str) -> Any:
    """
    ``json.loads`` without the NaN/Infinity extensions.

    Anything accepted here can be written back out with ``allow_nan=False``.
    """
    return json.loads(raw, parse_constant=_reject_constant)


def salvage_id(raw: str) -> Any:
    """
    Best-effort extraction of the ``id`` member from a raw JSON document.

    Used before structural validation so that a request which fails to
    validate can still be answered with its own id. Returns None when the
    text is not JSON, is not an object, or has no ``id``.
    """
    try:
        document = loads_strict(raw)
    except ValueError:
        return None
    if isinstance(document, dict):
        return document.get("id")
    return None
