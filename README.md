# authorino

Building blocks for an external authorization service. The package is a library; it has no command line of its own.

## Modules

- `authorino.jsonpath`: path queries over JSON documents (`get`, `parse`, `Result`). Extra modifiers can be registered with `add_modifier`.
- `authorino.jsonvalue`: `JSONValue` (a static value or a pattern), `JSONProperty`, `replace_json_placeholders` for `{path}` templates, `stringify_json` and `unmarshal_json_response`. Importing this module registers the `@extract`, `@replace`, `@case`, `@base64` and `@strip` modifiers.
- `authorino.jsonexp`: `Pattern`, `And` and `Or` conditions, plus `all_of` and `any_of`. Operators are `eq`, `neq`, `incl`, `excl` and `matches` (`Operator`, `operator_from_string`).
- `authorino.index`: `Index`, a thread-safe tree of auth configs keyed by host names, with `*` wildcards.
- `authorino.health`: `Handler`, a readiness check that asks observed components whether they are ready. It takes `include`, `exclude` and `verbose` from the request URL.
- `authorino.log`: `LogLevel`, `LogMode`, `Options`, `to_log_level`, `to_log_mode`, `new_logger`, `set_logger`, `with_name` and `with_values`. These are built on the standard `logging` module.
- `authorino.metrics`: in-process `CounterVec` and `HistogramVec` metrics with label values. Reporting helpers include `report_metric`, `report_metric_with_status`, `report_metric_with_object` and the `report_timed_metric*` variants. `set_deep_metrics_enabled` and `register` are also provided.
- `authorino.oauth2`: `ClientCredentials`, which fetches tokens with the client credentials grant and caches the last `Token`.
- `authorino.responses`: the response evaluators `DynamicJSON` and `Plain`, and `Wristband`, which issues signed JWTs. Also `SigningKey`, `new_signing_key` (EC or RSA PEM) and `new_wristband_config`.
- `authorino.response_config`: `ResponseConfig`, `new_response_config` and `wrap_responses`. `wrap_responses` splits results into HTTP headers and Envoy dynamic metadata.
- `authorino.generic_http`: `GenericHttp`, a metadata evaluator that calls an HTTP endpoint with GET or POST.
- `authorino.uma`: `UMA`, `Provider`, `PAT` and `new_uma_metadata`. Together they look up resource data on a UMA server.
- `authorino.httpmock`: `HttpServerMock`, a small HTTP server for tests that serves canned responses (`response_func`, `json_response`, `plain_response`).

## Installation

```
pip install .
```

To also install the test tools:

```
pip install ".[test]"
```

## Examples

Read a value from a document:

```python
from authorino import jsonpath

doc = '{"auth": {"identity": {"username": "john"}}}'
jsonpath.get(doc, "auth.identity.username").to_string()  # "john"
```

Fill in a template, or use a modifier:

```python
from authorino import jsonpath
from authorino.jsonvalue import JSONValue, replace_json_placeholders

replace_json_placeholders("user={auth.identity.username}", doc)  # "user=john"
JSONValue(pattern="auth.identity.username").resolve_for(doc)    # "john"
jsonpath.get(doc, "auth.identity.username|@case:upper").value()  # "JOHN"
```

Evaluate a condition:

```python
from authorino.jsonexp import Operator, Pattern, all_of

cond = all_of(Pattern("auth.identity.username", Operator.EQUAL, "john"))
cond.matches(doc)  # True
```

Look up a config by host:

```python
from authorino.index import Index

index = Index()
index.set("auth-1", "*.io", {"name": "generic"}, False)
index.get("talker-api.nip.io")  # {"name": "generic"}
index.find_id("*.io")           # "auth-1"
index.find_id("foo.org")        # None
```

Build a response and wrap it as a header:

```python
from dataclasses import dataclass
from authorino.jsonvalue import JSONProperty, JSONValue
from authorino.response_config import new_response_config, wrap_responses
from authorino.responses import DynamicJSON

@dataclass
class Pipeline:
    authorization_json: str

config = new_response_config("x-user", 0, None, "", "", False)
config.dynamic_json = DynamicJSON([JSONProperty("user", JSONValue(pattern="auth.identity.username"))])
headers, metadata = wrap_responses({config: config.call(Pipeline(doc))})
# headers == {"x-user": '{"user":"john"}'}, metadata == {}
```

Count events:

```python
from authorino import metrics

counter = metrics.new_counter_metric("requests", "Requests seen", "status")
metrics.report_metric_with_status(counter, "OK")
counter.labels("OK").value  # 1.0
```

## What the package does not do

The package provides no authorization server of its own: no gRPC or HTTP endpoint receives requests from a proxy. Nothing here loads auth configs from a cluster or from files; the caller builds configs and puts them into an `Index`. It has no identity verification evaluators, such as OIDC or API keys. `ResponseConfig` takes any cache object with `resolve_key_for`, `get` and `set`, but the package supplies no cache implementation. Metrics are kept in memory only. They are not exposed in any scrape format.

## Tests

```
pytest
```