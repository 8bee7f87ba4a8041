"""Pytest fixtures for the vote load-test suite.

HTTP traffic is served by httpx.MockTransport, so no running voting API
is needed. The environment is cleared of load-test variables for every
test so a developer's shell or .env cannot leak into assertions.
"""
import json
import os
from typing import Callable, List

import httpx
import pytest

from paredao_loadtest.config import RunParameters, ScenarioConfig

# Locust would otherwise gevent-patch the process the asyncio tests run in
os.environ.setdefault("LOCUST_SKIP_MONKEY_PATCH", "1")

SETTINGS_ENV_VARS = [
    "RATE",
    "DURATION",
    "PRE_VUS",
    "MAX_VUS",
    "API_BASE",
    "PAREDAO_ID",
    "PARTICIPANTE_IDS",
    "SLEEP",
    "REQUEST_TIMEOUT",
    "LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove load-test variables from the environment."""
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def run_params() -> RunParameters:
    """Run parameters with two participantes and no post-request pause."""
    return RunParameters(
        api_base="http://testserver",
        paredao_id="abc123",
        participante_ids=("p1", "p2"),
        sleep_seconds=0.0,
        request_timeout=5.0
    )


@pytest.fixture
def make_scenario() -> Callable[..., ScenarioConfig]:
    """Factory for small, fast scenarios."""
    def _make(
        rate: int = 20,
        duration_seconds: float = 0.25,
        pre_allocated_vus: int = 2,
        max_vus: int = 4
    ) -> ScenarioConfig:
        return ScenarioConfig(
            rate=rate,
            duration=f"{duration_seconds}s",
            duration_seconds=duration_seconds,
            pre_allocated_vus=pre_allocated_vus,
            max_vus=max_vus
        )

    return _make


class RecordingServer:
    """Fake voting API that answers every request with a fixed status."""

    def __init__(self, status_code: int = 202, error: Exception = None):
        self.status_code = status_code
        self.error = error
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={"status": "recebido"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def bodies(self) -> List[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def make_server() -> Callable[..., RecordingServer]:
    """Factory for fake voting API servers."""
    return RecordingServer


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "load: mark test as driving the arrival-rate executor"
    )
