from dataclasses import dataclass

import pytest

from authorino.jsonvalue import JSONProperty, JSONValue
from authorino.response_config import (
    ENVOY_DYNAMIC_METADATA_WRAPPER,
    HTTP_HEADER_WRAPPER,
    RESPONSE_JSON,
    RESPONSE_PLAIN,
    new_response_config,
    wrap_responses,
)
from authorino.responses import DynamicJSON, Plain


@dataclass
class FakePipeline:
    authorization_json: str = '{"auth":{"identity":{"username":"john"}}}'
    resolved_identity: tuple = (None, None)


class FakeCache:
    def __init__(self, fail_get=False):
        self.store = {}
        self.fail_get = fail_get

    def resolve_key_for(self, json_data):
        return json_data

    def get(self, key):
        if self.fail_get:
            raise RuntimeError("cache down")
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = value


def test_wrap_response_object_as_header():
    config = new_response_config("resp", 0, None, HTTP_HEADER_WRAPPER, "my-key", False)

    config.dynamic_json = DynamicJSON()
    assert config.wrap_object_as_header_value({"my-prop": "my-value"}) == '{"my-prop":"my-value"}'

    config.dynamic_json = None
    config.plain = Plain()
    assert config.wrap_object_as_header_value("my-value") == "my-value"


def test_new_response_config_defaults():
    config = new_response_config("resp", 2, None, "", "", True)
    assert config.wrapper == HTTP_HEADER_WRAPPER
    assert config.wrapper_key == "resp"
    assert config.priority == 2
    assert config.metrics_enabled is True
    assert config.type == ""


def test_type_follows_evaluator():
    config = new_response_config("resp", 0, None, "", "", False)
    config.plain = Plain(static="x")
    assert config.type == RESPONSE_PLAIN
    config.dynamic_json = DynamicJSON()
    assert config.type == RESPONSE_JSON


def test_call_without_evaluator_raises():
    config = new_response_config("resp", 0, None, "", "", False)
    with pytest.raises(ValueError, match="invalid response config"):
        config.call(FakePipeline())


def test_call_evaluates():
    config = new_response_config("resp", 0, None, "", "", False)
    config.plain = Plain(pattern="auth.identity.username")
    assert config.call(FakePipeline()) == "john"


def test_call_uses_cache():
    config = new_response_config("resp", 0, None, "", "", False)
    config.dynamic_json = DynamicJSON([JSONProperty("a", JSONValue(static="first"))])
    config.cache = FakeCache()

    assert config.call(FakePipeline()) == {"a": "first"}
    config.dynamic_json = DynamicJSON([JSONProperty("a", JSONValue(static="second"))])
    assert config.call(FakePipeline()) == {"a": "first"}


def test_call_survives_cache_failure():
    config = new_response_config("resp", 0, None, "", "", False)
    config.plain = Plain(static="value1")
    config.cache = FakeCache(fail_get=True)
    assert config.call(FakePipeline()) == "value1"
    assert list(config.cache.store.values()) == ["value1"]


def test_wrap_responses():
    header_config = new_response_config("x-auth", 0, None, HTTP_HEADER_WRAPPER, "", False)
    header_config.dynamic_json = DynamicJSON()
    metadata_config = new_response_config("meta", 0, None, ENVOY_DYNAMIC_METADATA_WRAPPER, "ext", False)
    metadata_config.dynamic_json = DynamicJSON()
    plain_config = new_response_config("x-user", 0, None, "", "", False)
    plain_config.plain = Plain()

    headers, metadata = wrap_responses({
        header_config: {"user": "john"},
        metadata_config: {"user": "john"},
        plain_config: "john",
    })
    assert headers == {"x-auth": '{"user":"john"}', "x-user": "john"}
    assert metadata == {"ext": {"user": "john"}}