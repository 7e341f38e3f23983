import pytest

from thunderbird_bridge.models import (
    INTERNAL_ERROR,
    JsonRpcRequest,
    JsonRpcResponse,
    salvage_id,
)


def test_absent_id_marks_notification():
    request = JsonRpcRequest.model_validate_json('{"jsonrpc": "2.0", "method": "ping"}')
    assert request.is_notification
    assert "id" not in request.to_wire()


def test_null_id_is_not_a_notification():
    request = JsonRpcRequest.model_validate_json('{"jsonrpc": "2.0", "id": null, "method": "ping"}')
    assert not request.is_notification
    assert request.to_wire()["id"] is None


def test_id_type_is_preserved():
    assert JsonRpcRequest.model_validate_json('{"id": "7", "method": "m"}').id == "7"
    numeric = JsonRpcRequest.model_validate_json('{"id": 7, "method": "m"}')
    assert numeric.id == 7 and isinstance(numeric.id, int)


def test_derive_keeps_id_and_replaces_method():
    request = JsonRpcRequest(id="abc", method="tools/call", params={"name": "x"})
    derived = request.derive("listAccounts", {"a": 1})

    assert derived.to_wire() == {"jsonrpc": "2.0", "id": "abc", "method": "listAccounts", "params": {"a": 1}}


def test_derive_without_params_omits_them():
    derived = JsonRpcRequest(id=1, method="tools/list").derive("listTools")
    assert derived.to_wire() == {"jsonrpc": "2.0", "id": 1, "method": "listTools"}


def test_derive_from_notification_stays_notification():
    derived = JsonRpcRequest(method="tools/list").derive("listTools")
    assert derived.is_notification


def test_response_never_carries_both_result_and_error():
    response = JsonRpcResponse(id=1, result={"x": 1}, error={"code": -1, "message": "boom"})
    wire = response.to_wire()

    assert "result" not in wire
    assert wire["error"] == {"code": -1, "message": "boom"}


def test_null_result_is_still_emitted():
    wire = JsonRpcResponse.success(3, None).to_wire()
    assert wire == {"jsonrpc": "2.0", "id": 3, "result": None}


def test_error_response_always_has_id():
    response = JsonRpcResponse.error_response(None, INTERNAL_ERROR, "down")
    assert response.to_json() == '{"jsonrpc":"2.0","id":null,"error":{"code":-32603,"message":"down"}}'


def test_error_data_passes_through():
    response = JsonRpcResponse.model_validate_json(
        '{"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "x", "data": {"k": 1}}}'
    )
    assert response.to_wire()["error"] == {"code": -32000, "message": "x", "data": {"k": 1}}


def test_salvage_id():
    assert salvage_id('{"id": 9, "params": {}}') == 9
    assert salvage_id('{"id": "s"}') == "s"
    assert salvage_id('{"method": "x"}') is None
    assert salvage_id("{not json") is None
    assert salvage_id("[1, 2]") is None
    assert salvage_id("42") is None


def test_salvage_id_rejects_non_finite_numbers():
    assert salvage_id('{"id": NaN, "method": "m"}') is None
    assert salvage_id('{"id": 1, "params": [Infinity]}') is None


def test_to_json_refuses_non_finite_numbers():
    response = JsonRpcResponse.success(1, float("nan"))

    with pytest.raises(ValueError):
        response.to_json()
