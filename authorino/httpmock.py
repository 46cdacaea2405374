"""A small HTTP server that answers fixed paths with canned responses."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Mapping

JSON_CONTENT_TYPE = "application/json"
PLAIN_CONTENT_TYPE = "text/plain"

_logger = logging.getLogger(__name__)


@dataclass
class MockResponse:
    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""


ResponseFunc = Callable[[], MockResponse]


def response_func(status: int, headers: Mapping[str, str], body: str) -> ResponseFunc:
    """A response function that always answers with the same response."""
    fixed = dict(headers)
    return lambda: MockResponse(status, dict(fixed), body)


def json_response(body: str) -> ResponseFunc:
    return response_func(200, {"Content-Type": JSON_CONTENT_TYPE}, body)


def plain_response(body: str) -> ResponseFunc:
    return response_func(200, {"Content-Type": PLAIN_CONTENT_TYPE}, body)


class _Server(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address: tuple[str, int], mocks: Mapping[str, ResponseFunc]) -> None:
        self.mocks = dict(mocks)
        super().__init__(address, _Handler)


class _Handler(BaseHTTPRequestHandler):
    server: _Server

    def _respond(self) -> None:
        length = int(self.headers.get("Content-Length") or 0)
        if length:
            self.rfile.read(length)

        func = self.server.mocks.get(self.path)
        if func is None:
            self.send_response(200)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return

        response = func()
        body = response.body.encode("utf-8")
        self.send_response(response.status)
        names = {name.lower() for name in response.headers}
        for name, value in response.headers.items():
            self.send_header(name, value)
        if body and "content-type" not in names:
            self.send_header("Content-Type", "text/plain; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    do_GET = do_POST = do_PUT = do_PATCH = do_DELETE = _respond

    def log_message(self, format: str, *args: object) -> None:
        _logger.debug("%s - " + format, self.address_string(), *args)


class HttpServerMock:
    """Serve ``mocks`` (request target -> response function) on ``server_host``.

    ``server_host`` is ``host:port``; port 0 picks a free port. Requests to
    unknown targets get an empty 200 response.
    """

    def __init__(self, server_host: str, mocks: Mapping[str, ResponseFunc]) -> None:
        host, _, port = server_host.rpartition(":")
        self._server = _Server((host or "127.0.0.1", int(port)), mocks)
        self._thread = threading.Thread(target=self._server.serve_forever, daemon=True)
        self._thread.start()

    @property
    def host(self) -> str:
        host, port = self._server.server_address[:2]
        return f"{host}:{port}"

    @property
    def url(self) -> str:
        return f"http://{self.host}"

    def close(self) -> None:
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()

    def __enter__(self) -> HttpServerMock:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()