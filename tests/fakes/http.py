"""
Lightweight test doubles for the ``requests`` calls made by the gateway.

:class:`FakeResponse` provides just enough of :class:`requests.Response`
(``status_code``, ``headers`` and ``json()``) for the gateway's status
classification.  :class:`ScriptedRequests` replaces ``requests.request``:
responses are queued per ``(method, path)`` and every call is recorded so
tests can assert on URLs, headers and bodies, or on the absence of calls.
"""

from __future__ import annotations

import json
import threading
from collections import defaultdict, deque
from typing import Any
from urllib.parse import urlparse

import requests

JSON_HEADERS = {"Content-Type": "application/json; charset=utf-8"}


class FakeResponse:
    """
    Minimal stand-in for :class:`requests.Response`.

    Attributes:
        status_code: HTTP status code returned by the fake response.
        headers: Response headers; JSON content type unless *payload* is
            ``None``.
        content: Raw body bytes; the encoded payload unless given
            explicitly (e.g. a malformed body).
    """

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
    ):
        self.status_code = status_code
        self._payload = payload
        if content is None:
            content = b"" if payload is None else json.dumps(payload).encode("utf-8")
        self.content = content
        if headers is None:
            headers = dict(JSON_HEADERS) if payload is not None else {"Content-Type": "text/plain"}
        self.headers = headers

    def json(self):
        """Return the pre-configured JSON payload, or decode :attr:`content`."""
        if self._payload is None:
            return json.loads(self.content)
        return self._payload


class ScriptedRequests:
    """
    Callable replacement for ``requests.request``.

    Queue responses with :meth:`add`; a queued exception instance is raised
    instead of returned.  The last queued item for a route is reused once
    the queue for that route would otherwise run dry, so a refetch after a
    mutation sees the most recent collection.
    """

    def __init__(self) -> None:
        self._routes: dict[tuple[str, str], deque] = defaultdict(deque)
        self._lock = threading.Lock()
        self.calls: list[dict[str, Any]] = []

    def add(self, method: str, path: str, response: FakeResponse | Exception) -> ScriptedRequests:
        self._routes[(method.upper(), path)].append(response)
        return self

    def replace(self, method: str, path: str, response: FakeResponse | Exception) -> ScriptedRequests:
        """Drop anything queued for the route, then queue *response*."""
        self._routes.pop((method.upper(), path), None)
        return self.add(method, path, response)

    def calls_to(self, method: str, path: str) -> list[dict[str, Any]]:
        return [
            call
            for call in self.calls
            if call["method"] == method.upper() and urlparse(call["url"]).path == path
        ]

    def __call__(self, **kwargs: Any) -> FakeResponse:
        method = kwargs["method"].upper()
        path = urlparse(kwargs["url"]).path
        with self._lock:
            self.calls.append(kwargs)
            queue = self._routes.get((method, path))
            if not queue:
                raise AssertionError(f"Unexpected request: {method} {path}")
            item = queue.popleft() if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item


def connection_error() -> requests.ConnectionError:
    """A transport failure raised before any response exists."""
    return requests.ConnectionError("Connection refused")
