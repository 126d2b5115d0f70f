import json
import os

import httpx
import pytest
from fastapi.testclient import TestClient

ROUTER_ENV_VARS = (
    "PORT", "HOST", "ANTHROPIC_BASE_URL_UPSTREAM",
    "SIMPLE_MODEL", "MEDIUM_MODEL", "COMPLEX_MODEL",
    "SIMPLE_THRESHOLD", "COMPLEX_THRESHOLD", "TOP_TIER_MARKER",
    "VERBOSE", "FORCE_MODEL", "DISABLED",
    "OLLAMA_URL", "OLLAMA_BASE_URL", "OLLAMA_MODEL",
    "OLLAMA_TIMEOUT_SEC", "OLLAMA_PROBE_TIMEOUT_SEC", "ROUTER_PATTERNS",
)

UPSTREAM_URL = "https://upstream.test"


@pytest.fixture(scope="session", autouse=True)
def setup_global_env():
    """
    Baseline for the whole session: never probe a real Ollama at startup.
    """
    os.environ["ROUTER_ENV"] = "test"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """
    Every test starts from the defaults, whatever the developer shell exports.
    The pattern table cache is reset so ROUTER_PATTERNS overrides stay local.
    """
    from routing.patterns import load_patterns

    for var in ROUTER_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ROUTER_ENV", "test")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")
    load_patterns.cache_clear()

    yield

    load_patterns.cache_clear()


class UpstreamRecorder:
    """httpx.MockTransport handler that records requests and answers like the Messages API."""

    def __init__(self):
        self.requests = []
        self.handler = self.echo

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @staticmethod
    def echo(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content or b"{}")
        return httpx.Response(200, json={"id": "msg_test", "type": "message", "model": body.get("model")})

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    @property
    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def upstream():
    return UpstreamRecorder()


@pytest.fixture
def make_pipeline(upstream):
    """Build a ProxyPipeline wired to the recording upstream."""
    from providers.anthropic_client import AnthropicClient
    from routing.classifier import ClassificationRouter
    from routing.tiers import RoutingConfig
    from services.proxy import ProxyPipeline
    from services.stats import RoutingStats

    def _make(config=None, scorer=None, force_model=None, disabled=False, verbose=False):
        router = ClassificationRouter(
            config or RoutingConfig(), scorer=scorer, force_model=force_model, disabled=disabled,
        )
        client = AnthropicClient(UPSTREAM_URL, transport=httpx.MockTransport(upstream))
        return ProxyPipeline(router, client, RoutingStats(), verbose=verbose)

    return _make


@pytest.fixture
def make_client(make_pipeline):
    """
    TestClient factory around create_app(pipeline).
    Uses the context manager pattern so the lifespan runs and is torn down.
    """
    from app.main import create_app

    opened = []

    def _make(**kwargs):
        test_client = TestClient(create_app(make_pipeline(**kwargs)))
        test_client.__enter__()
        opened.append(test_client)
        return test_client

    yield _make

    for test_client in opened:
        test_client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def api_headers():
    return {"x-api-key": "sk-ant-test", "anthropic-version": "2023-06-01"}
