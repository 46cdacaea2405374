import pytest

from authorino import jsonpath

DOC = '{"name":"john","age":42,"ok":true,"tags":["a","b"],"items":[{"id":"x"},{"id":"y"}],"a.b":"dotted"}'


def test_get_nested_and_missing():
    assert jsonpath.get('{"auth":{"identity":{"username":"john"}}}', "auth.identity.username").value() == "john"
    missing = jsonpath.get(DOC, "nope.deeper")
    assert not missing.exists
    assert missing.value() is None
    assert missing.to_string() == ""


def test_scalars_to_string():
    assert jsonpath.get(DOC, "age").to_string() == "42"
    assert jsonpath.get(DOC, "ok").to_string() == "true"
    assert jsonpath.get(DOC, "age").to_int() == 42


def test_array_index_and_length():
    assert jsonpath.get(DOC, "tags.1").value() == "b"
    assert jsonpath.get(DOC, "tags.#").value() == len(["a", "b"])
    assert [r.to_string() for r in jsonpath.get(DOC, "tags").array()] == ["a", "b"]


def test_hash_maps_over_elements():
    assert jsonpath.get(DOC, "items.#.id").value() == ["x", "y"]


def test_escaped_dot_and_wildcard():
    assert jsonpath.get(DOC, r"a\.b").value() == "dotted"
    assert jsonpath.get(DOC, "na*").value() == "john"


def test_container_to_string_is_compact_json():
    assert jsonpath.get(DOC, "items.0").to_string() == '{"id":"x"}'


def test_array_of_scalar_wraps_itself():
    res = jsonpath.get(DOC, "name").array()
    assert [r.value() for r in res] == ["john"]
    assert jsonpath.get(DOC, "missing").array() == []


def test_builtin_reverse_modifier():
    assert jsonpath.get(DOC, "tags|@reverse").value() == ["b", "a"]


def test_custom_modifier_receives_raw_json_and_arg():
    seen = []

    def echo(text, arg):
        seen.append((text, arg))
        return text

    jsonpath.add_modifier("echo_test", echo)
    assert jsonpath.get(DOC, "name.@echo_test:xyz").value() == "john"
    assert seen == [('"john"', "xyz")]


def test_unknown_modifier_gives_nothing():
    assert not jsonpath.get(DOC, "name.@does_not_exist").exists


@pytest.mark.parametrize("doc", ['{"a":1}', "[1,2]", '"s"'])
def test_parse_raw_roundtrip(doc):
    assert jsonpath.parse(doc).raw == doc


def test_parse_invalid():
    assert not jsonpath.parse("{not json").exists