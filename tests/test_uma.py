import json
from types import SimpleNamespace

import pytest

from authorino.httpmock import HttpServerMock, MockResponse
from authorino.jsonvalue import JSONResponseError
from authorino.uma import PAT, UMAError, new_uma_metadata

RESOURCE_ID = "44f93c94-a8d0-4b33-8188-8173e86844d2"
RESOURCE_DATA = '{"_id":"44f93c94-a8d0-4b33-8188-8173e86844d2","name":"some-resource","uris":["/someresource"]}'
CONFIG_PATH = "/uma/.well-known/uma2-configuration"


def jsonr(body):
    return lambda: MockResponse(200, {"Context-Type": "application/json"}, body)


def start_server(extra_routes, issuer_override=None):
    holder = {}

    def config():
        issuer = holder["issuer"]
        body = json.dumps(
            {
                "issuer": issuer_override or issuer,
                "token_endpoint": issuer + "/pat",
                "resource_registration_endpoint": issuer + "/resource_set",
            }
        )
        return MockResponse(200, {}, body)

    server = HttpServerMock("127.0.0.1:0", {CONFIG_PATH: config, **extra_routes})
    holder["issuer"] = server.url + "/uma"
    return server, holder["issuer"]


def test_new_uma_metadata():
    server, issuer = start_server({})
    with server:
        uma = new_uma_metadata(issuer, "client-id", "secret")
    assert uma.provider.issuer == issuer
    assert uma.provider.token_url == issuer + "/pat"
    assert uma.provider.resource_registration_url == issuer + "/resource_set"


def test_fail_to_decode_config():
    with HttpServerMock("127.0.0.1:0", {CONFIG_PATH: lambda: MockResponse(500)}) as server:
        with pytest.raises(UMAError, match="failed to decode uma provider discovery object"):
            new_uma_metadata(server.url + "/uma", "client-id", "secret")


def test_issuer_mismatch():
    server, issuer = start_server({}, issuer_override="http://other")
    with server:
        with pytest.raises(UMAError, match="does not match the issuer"):
            new_uma_metadata(issuer, "client-id", "secret")


def test_uma_call():
    routes = {
        "/uma/pat": jsonr('{"some-pat-claim": "some-value"}'),
        "/uma/resource_set?uri=/someresource": jsonr(json.dumps([RESOURCE_ID])),
        f"/uma/resource_set/{RESOURCE_ID}": jsonr(RESOURCE_DATA),
    }
    server, issuer = start_server(routes)
    with server:
        uma = new_uma_metadata(issuer, "client-id", "secret")
        obj = uma.call(SimpleNamespace(http=SimpleNamespace(path="/someresource")))
    assert obj == [json.loads(RESOURCE_DATA)]


def test_failed_resources_are_dropped():
    routes = {
        "/uma/resource_set?uri=/someresource": jsonr(json.dumps([RESOURCE_ID, "missing"])),
        f"/uma/resource_set/{RESOURCE_ID}": jsonr(RESOURCE_DATA),
    }
    server, issuer = start_server(routes)
    with server:
        uma = new_uma_metadata(issuer, "client-id", "secret")
        data = uma.provider.get_resources_by_uri("/someresource", PAT("token"))
    assert data == [json.loads(RESOURCE_DATA)]


def test_pat_get_error_status():
    with HttpServerMock("127.0.0.1:0", {"/x": lambda: MockResponse(500, {}, "boom")}) as server:
        with pytest.raises(JSONResponseError, match="500"):
            PAT("token").get(server.url + "/x")


def test_pat_string():
    assert str(PAT("token")) == "token"