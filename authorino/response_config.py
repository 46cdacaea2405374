"""Response configs and how their results are wrapped for the proxy."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from authorino import log
from authorino.jsonexp import Expression
from authorino.jsonvalue import stringify_json
from authorino.responses import AuthPipeline, DynamicJSON, Plain, Wristband

RESPONSE_WRISTBAND = "RESPONSE_WRISTBAND"
RESPONSE_JSON = "RESPONSE_JSON"
RESPONSE_PLAIN = "RESPONSE_PLAIN"

HTTP_HEADER_WRAPPER = "httpHeader"
ENVOY_DYNAMIC_METADATA_WRAPPER = "envoyDynamicMetadata"
DEFAULT_WRAPPER = HTTP_HEADER_WRAPPER


class EvaluatorCache(Protocol):
    def resolve_key_for(self, json_data: str) -> Any: ...
    def get(self, key: Any) -> Any: ...
    def set(self, key: Any, value: Any) -> None: ...


@dataclass(eq=False)
class ResponseConfig:
    """One response item: which evaluator builds it and where it goes."""

    name: str
    priority: int = 0
    conditions: Expression | None = None
    wrapper: str = DEFAULT_WRAPPER
    wrapper_key: str = ""
    metrics_enabled: bool = False
    cache: EvaluatorCache | None = None
    wristband: Wristband | None = None
    dynamic_json: DynamicJSON | None = None
    plain: Plain | None = None

    @property
    def type(self) -> str:
        if self.wristband is not None:
            return RESPONSE_WRISTBAND
        if self.dynamic_json is not None:
            return RESPONSE_JSON
        if self.plain is not None:
            return RESPONSE_PLAIN
        return ""

    @property
    def evaluator(self) -> Wristband | DynamicJSON | Plain | None:
        return {
            RESPONSE_WRISTBAND: self.wristband,
            RESPONSE_JSON: self.dynamic_json,
            RESPONSE_PLAIN: self.plain,
        }.get(self.type)

    def call(self, pipeline: AuthPipeline) -> Any:
        """Evaluate the response, reading from and filling the cache if any."""
        evaluator = self.evaluator
        if evaluator is None:
            raise ValueError("invalid response config")

        logger = log.with_name("response")
        cache = self.cache
        cache_key = None

        if cache is not None:
            cache_key = cache.resolve_key_for(pipeline.authorization_json)
            try:
                cached = cache.get(cache_key)
            except Exception as err:
                logger.debug("failed to retrieve data from the cache: %s", err)
            else:
                if cached is not None:
                    return cached

        obj = evaluator.call(pipeline)

        if cache is not None and cache_key is not None:
            try:
                cache.set(cache_key, obj)
            except Exception as err:
                logger.debug("unable to store data in the cache: %s", err)

        return obj

    def wrap_object_as_header_value(self, obj: Any) -> str:
        if self.type in (RESPONSE_JSON, RESPONSE_WRISTBAND):
            try:
                return stringify_json(obj)
            except ValueError:
                return ""
        return _format_value(obj)


def _format_value(obj: Any) -> str:
    if obj is None:
        return "<nil>"
    if isinstance(obj, bool):
        return "true" if obj else "false"
    return str(obj)


def new_response_config(
    name: str,
    priority: int,
    conditions: Expression | None,
    wrapper: str,
    wrapper_key: str,
    metrics_enabled: bool,
) -> ResponseConfig:
    return ResponseConfig(
        name=name,
        priority=priority,
        conditions=conditions,
        wrapper=wrapper or DEFAULT_WRAPPER,
        wrapper_key=wrapper_key or name,
        metrics_enabled=metrics_enabled,
    )


def wrap_responses(
    responses: Mapping[ResponseConfig, Any],
) -> tuple[dict[str, str], dict[str, Any]]:
    """Split evaluated responses into HTTP headers and dynamic metadata."""
    headers: dict[str, str] = {}
    metadata: dict[str, Any] = {}
    for config, obj in responses.items():
        if config.wrapper == HTTP_HEADER_WRAPPER:
            headers[config.wrapper_key] = config.wrap_object_as_header_value(obj)
        elif config.wrapper == ENVOY_DYNAMIC_METADATA_WRAPPER:
            metadata[config.wrapper_key] = obj
    return headers, metadata