from __future__ import annotations

import json
import os
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx

FIXTURES = os.path.join(os.path.dirname(__file__), "fixtures")


def load_fixture(name: str) -> Any:
    with open(os.path.join(FIXTURES, name), "r", encoding="utf-8") as f:
        return json.load(f)


def make_response(
    status: int = 200,
    json_obj: Any | None = None,
    headers: Dict[str, str] | None = None,
    url: str = "/",
    content: bytes | None = None,
) -> httpx.Response:
    req = httpx.Request("GET", url)
    if content is None:
        content = b"" if json_obj is None else json.dumps(json_obj).encode("utf-8")
    return httpx.Response(status_code=status, headers=headers or {}, content=content, request=req)


Queued = Union[httpx.Response, BaseException, Callable[[str, str, Dict[str, Any]], httpx.Response]]


class FakeAsyncClient:
    """Queue-based stand-in for httpx.AsyncClient that records every call."""

    def __init__(self, *args, **kwargs):
        self._queue: List[Queued] = []
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.closed = False

    def queue(self, item: Queued) -> None:
        self._queue.append(item)

    def _next(self, method: str, url: str, kwargs: Dict[str, Any]) -> httpx.Response:
        self.calls.append((method, url, kwargs))
        if not self._queue:
            raise RuntimeError(f"FakeAsyncClient queue empty for {method}")
        item = self._queue.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(method, url, kwargs)
        return item

    async def get(self, url: str, *args, **kwargs) -> httpx.Response:
        return self._next("GET", url, kwargs)

    async def post(self, url: str, *args, **kwargs) -> httpx.Response:
        return self._next("POST", url, kwargs)

    async def aclose(self) -> None:
        self.closed = True

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class RoutedAsyncClient(FakeAsyncClient):
    """Answers by URL substring; first matching route wins."""

    def __init__(self, routes: Optional[List[Tuple[str, str, Queued]]] = None):
        super().__init__()
        self.routes = list(routes or [])

    def _next(self, method: str, url: str, kwargs: Dict[str, Any]) -> httpx.Response:
        self.calls.append((method, url, kwargs))
        for m, match, resp in self.routes:
            if m == method and match in url:
                if isinstance(resp, BaseException):
                    raise resp
                if callable(resp):
                    return resp(method, url, kwargs)
                return resp
        return make_response(404, {})


def auth_ok(token: str = "jwt-token-1") -> httpx.Response:
    return make_response(200, None, headers={"x-jwt-token": token})
