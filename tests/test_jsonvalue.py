from types import SimpleNamespace

import pytest

from authorino import jsonpath
from authorino.jsonvalue import (
    JSONProperty,
    JSONResponseError,
    JSONValue,
    replace_json_placeholders,
    stringify_json,
    unmarshal_json_response,
)

AUTH = '{"auth":{"identity":{"user":"mock","username":"john"}},"h":"Bearer token"}'


def test_static_value():
    assert JSONValue(static="value1").resolve_for(AUTH) == "value1"


def test_pattern_value():
    assert JSONValue(pattern="auth.identity.username").resolve_for(AUTH) == "john"


def test_template_with_escaped_braces():
    value = JSONValue(pattern=r'\{"foo":"bar","user":\{"name":"{auth.identity.user}"\}\}')
    assert value.is_template()
    assert value.resolve_for(AUTH) == '{"foo":"bar","user":{"name":"mock"}}'


def test_modifier_braces_are_not_template():
    assert not JSONValue(pattern='h.@extract:{"pos":1}').is_template()
    assert not JSONValue(pattern="auth.identity.user").is_template()


def test_replace_placeholders_in_url():
    doc = '{"context":{"request":{"http":{"headers":{"x-origin":"some-origin"}}}}}'
    url = "http://host/metadata?p={context.request.http.headers.x-origin}"
    assert replace_json_placeholders(url, doc) == "http://host/metadata?p=some-origin"


def test_extract_modifier():
    assert jsonpath.get(AUTH, 'h.@extract:{"pos":1}').to_string() == "token"
    assert jsonpath.get(AUTH, "h.@extract").to_string() == "Bearer"


def test_replace_and_case_modifiers():
    assert jsonpath.get(AUTH, 'h.@replace:{"old":"Bearer ","new":""}').to_string() == "token"
    assert jsonpath.get(AUTH, "h.@case:upper").to_string() == "BEARER TOKEN"


def test_base64_roundtrip():
    encoded = jsonpath.get(AUTH, "h.@base64:encode").to_string()
    doc = stringify_json({"v": encoded})
    assert jsonpath.get(doc, "v.@base64:decode").to_string() == "Bearer token"


def test_base64_unpadded():
    encoded = jsonpath.get('{"v":"ab"}', "v.@base64:encode").to_string().rstrip("=")
    assert jsonpath.get(stringify_json({"v": encoded}), "v.@base64:decode").to_string() == "ab"


def test_stringify():
    assert stringify_json({"my-prop": "my-value"}) == '{"my-prop":"my-value"}'
    assert stringify_json("abc") == "abc"
    assert stringify_json({"x": "<"}) == '{"x":"\\u003c"}'


def test_stringify_rejects_unencodable():
    with pytest.raises(ValueError):
        stringify_json({"x": object()})


def test_property_holds_value():
    prop = JSONProperty("user", JSONValue(pattern="auth.identity.user"))
    assert prop.value.resolve_for(AUTH) == "mock"


def _resp(status, body, ct=""):
    return SimpleNamespace(status_code=status, reason="X", content=body.encode(),
                           headers={"Content-Type": ct} if ct else {})


def test_unmarshal_ok():
    assert unmarshal_json_response(_resp(200, '{"a":[1]}')) == {"a": [1]}


def test_unmarshal_bad_status():
    with pytest.raises(JSONResponseError, match="500"):
        unmarshal_json_response(_resp(500, "boom"))


def test_unmarshal_invalid_json_content_type():
    with pytest.raises(JSONResponseError, match="got Content-Type = application/json"):
        unmarshal_json_response(_resp(200, "{bad", "application/json; charset=utf-8"))
    with pytest.raises(JSONResponseError, match="expected Content-Type"):
        unmarshal_json_response(_resp(200, "{bad", "text/plain"))