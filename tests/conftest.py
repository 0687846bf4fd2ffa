"""Shared fixtures: an in-memory fake of the Blackfire API."""

from __future__ import annotations

import json
from typing import Any, Iterator

import httpx
import pytest

from core.config import ClientSettings
from core.services import BlackfireClient

ENDPOINT = "https://blackfire.test"

COLLAB_TOKENS = {
    "collabTokens": [
        {
            "name": "Default env",
            "collabToken": "tok-default",
            "profileSlots": [
                {"id": "00000000-0000-0000-0000-000000000000", "number": 0, "empty": True},
                {"id": "slot-d1", "number": 1, "empty": False},
            ],
        },
        {
            "name": "API staging",
            "collabToken": "tok-staging",
            "profileSlots": [],
        },
        {
            "name": "API prod",
            "collabToken": "tok-prod",
            "profileSlots": [
                {"id": "slot-p1", "number": 1, "empty": False},
                {"id": "slot-p2", "number": 2, "empty": True},
            ],
        },
    ]
}


def signing_response(uuid: str = "req-1") -> dict[str, Any]:
    return {
        "uuid": uuid,
        "query_string": f"signature=abc&profile_uuid={uuid}",
        "_links": {
            "profile": {"href": f"{ENDPOINT}/api/v1/profiles/{uuid}"},
            "store": {"href": f"{ENDPOINT}/api/v1/profiles/{uuid}/store"},
        },
    }


class FakeApi:
    """Routes `(method, path)` to queued responses.

    Each queued item is `(status, payload)` or an exception to raise. The last
    item of a queue is sticky.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Any]] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, *items: Any) -> "FakeApi":
        self.routes.setdefault((method, path), []).extend(items)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "Not found"})

        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        status, payload = item
        if isinstance(payload, str):
            return httpx.Response(status, text=payload)
        return httpx.Response(status, json=payload)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [c for c in self.calls if c.method == method and c.url.path == path]

    def json_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content)


class FakeProbe:
    def __init__(self, token: str) -> None:
        self.token = token
        self.enabled = False
        self.closed = False

    def enable(self) -> None:
        self.enabled = True

    def close(self) -> None:
        self.closed = True


def make_settings(**overrides: Any) -> ClientSettings:
    values: dict[str, Any] = {
        "endpoint": ENDPOINT,
        "client_id": "client-id",
        "client_token": "client-token",
        "app": None,
    }
    values.update(overrides)
    return ClientSettings(_env_file=None, **values)


@pytest.fixture
def api() -> FakeApi:
    fake = FakeApi()
    fake.add("GET", "/api/v1/collab-tokens", (200, COLLAB_TOKENS))
    return fake


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def client(api: FakeApi, sleeps: list[float]) -> Iterator[BlackfireClient]:
    instance = BlackfireClient(
        make_settings(),
        probe_factory=FakeProbe,
        transport=httpx.MockTransport(api.handler),
        sleep=sleeps.append,
    )
    yield instance
    instance.close()
