import json
from pathlib import Path
from typing import Any

import httpx
import pytest

import snapfetch


@pytest.fixture
def fixture_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def load_fixture(fixture_dir):
    def _loader(name: str) -> Any:
        with open(fixture_dir / name, "r", encoding="utf-8") as f:
            return json.load(f)
    return _loader


@pytest.fixture
def douyin_post_fixture(load_fixture):
    return load_fixture("douyin_post.json")


@pytest.fixture
def douyin_mixed_fixture(load_fixture):
    return load_fixture("douyin_mixed.json")


@pytest.fixture
def weibo_container_fixture(load_fixture):
    return load_fixture("weibo_container.json")


@pytest.fixture
def weibo_status_fixture(load_fixture):
    return load_fixture("weibo_status.json")


@pytest.fixture
def make_raw():
    def _make(provider: str, body, url: str = "", status: int = 200) -> snapfetch.RawResponse:
        if not isinstance(body, bytes):
            body = json.dumps(body, ensure_ascii=False).encode("utf-8")
        return snapfetch.RawResponse(provider=provider, status=status, body=body, url=url)
    return _make


class SequenceHandler:
    """MockTransport handler replaying outcomes in order; the last one repeats.

    An outcome is an ``httpx.Response``, a bare status code, or an exception
    to raise.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, int):
            return httpx.Response(outcome, json={})
        return outcome


@pytest.fixture
def sequence_handler():
    return SequenceHandler


@pytest.fixture
def make_gateway():
    def _factory(handler, **config) -> snapfetch.HttpGateway:
        config.setdefault("backoff_base", 0)
        config.setdefault("jitter", 0)
        config.setdefault("request_timeout", None)
        config.setdefault("timeout", 1.0)
        return snapfetch.HttpGateway(snapfetch.GatewayConfig(**config),
                                     transport=httpx.MockTransport(handler))
    return _factory
