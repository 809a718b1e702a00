import json
import os
import random
from collections.abc import Callable
from typing import Any

os.environ.setdefault("LOG_DISABLE_FILE", "true")

import httpx  # noqa: E402
import pytest  # noqa: E402

from proxy_dispatch.models.dispatch import Server  # noqa: E402
from proxy_dispatch.services.credentials.store import CredentialStore  # noqa: E402
from proxy_dispatch.services.servers.directory import ServerDirectory  # noqa: E402

Handler = Callable[[httpx.Request], httpx.Response]


def make_storage(
    personal: str | None = None,
    pool: list[tuple[str, str | None]] | None = None,
    username: str = "alice",
) -> dict[str, str]:
    storage: dict[str, str] = {
        "currentUser": json.dumps(
            {"id": "u1", "username": username, "personalAuthToken": personal}
        )
    }
    if pool is not None:
        storage["veoAuthTokens"] = json.dumps(
            [{"token": token, "createdAt": created_at} for token, created_at in pool]
        )
    return storage


def pool_of(count: int, prefix: str = "pool") -> list[tuple[str, str | None]]:
    """count 条共享池凭据，编号越大越新"""
    return [(f"{prefix}-token-{i:02d}", f"2025-01-{i + 1:02d}T00:00:00Z") for i in range(count)]


class RecordingTransport:
    """按顺序返回预设响应，并记录每次请求"""

    def __init__(self, responses: list[httpx.Response | Exception]) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def tokens(self) -> list[str]:
        return [r.headers["authorization"].removeprefix("Bearer ") for r in self.requests]

    @property
    def hosts(self) -> list[str]:
        return [r.url.host for r in self.requests]


def json_response(status_code: int, payload: Any) -> httpx.Response:
    return httpx.Response(status_code, json=payload)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def servers() -> list[Server]:
    return [Server(id=f"s{i}", name=f"S{i}", url=f"https://s{i}.example.com") for i in range(1, 6)]


@pytest.fixture
def directory(servers: list[Server], rng: random.Random) -> ServerDirectory:
    return ServerDirectory(
        servers,
        defaults={"veo": "https://s1.example.com", "imagen": "https://s2.example.com"},
        rng=rng,
    )


@pytest.fixture
def store_factory() -> Callable[..., CredentialStore]:
    def factory(
        personal: str | None = None,
        pool: list[tuple[str, str | None]] | None = None,
        **kwargs: Any,
    ) -> CredentialStore:
        return CredentialStore(make_storage(personal, pool), **kwargs)

    return factory


@pytest.fixture
def make_client() -> Callable[[RecordingTransport], httpx.AsyncClient]:
    def factory(transport: RecordingTransport) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(transport))

    return factory
