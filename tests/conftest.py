from __future__ import annotations

import json
from typing import Any

import pytest

from etiquetas.store import LocalStore


class FakeResponse:
    def __init__(self, status_code: int = 200, body: Any = None, text: str | None = None, reason: str = ""):
        self.status_code = status_code
        self.reason = reason or ("OK" if status_code < 400 else "Error")
        self._body = body
        self.text = text if text is not None else (json.dumps(body) if body is not None else "")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self):
        if self._body is None:
            raise ValueError("no json")
        return self._body


class FakeSession:
    """Stands in for requests.Session: maps URL -> FakeResponse or exception."""

    def __init__(self, routes: dict[str, Any] | None = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, Any]] = []

    def _handle(self, method: str, url: str, payload: Any):
        self.calls.append((method, url, payload))
        result = self.routes.get(url)
        if result is None:
            raise AssertionError(f"unexpected {method} {url}")
        if isinstance(result, BaseException):
            raise result
        return result

    def post(self, url, json=None, timeout=None, **kwargs):
        return self._handle("POST", url, json)

    def get(self, url, timeout=None, **kwargs):
        return self._handle("GET", url, None)


@pytest.fixture
def store(tmp_path) -> LocalStore:
    return LocalStore(f"sqlite:///{(tmp_path / 'test.sqlite').as_posix()}")
