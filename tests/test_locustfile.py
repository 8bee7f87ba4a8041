"""Tests for the Locust version of the vote load test.

The locustfile reads its configuration at import time, so each test sets
the environment first and then imports a fresh copy of the module.
"""
import importlib
import random
import sys
from contextlib import contextmanager
from types import SimpleNamespace

import pytest

from paredao_loadtest.errors import ConfigurationError

LOCUSTFILE = "paredao_loadtest.locustfile"

VALID_ENV = {
    "PAREDAO_ID": "abc123",
    "PARTICIPANTE_IDS": "p1,p2",
    "RATE": "100",
    "DURATION": "30s",
    "PRE_VUS": "10",
    "MAX_VUS": "20",
    "API_BASE": "http://api:8080",
    "SLEEP": "0",
}


@pytest.fixture
def import_locustfile(monkeypatch, tmp_path):
    """Return a function that imports the locustfile under a given environment."""
    # No stray .env in the working directory
    monkeypatch.chdir(tmp_path)

    def _import(**env):
        for name, value in env.items():
            monkeypatch.setenv(name, value)
        monkeypatch.delitem(sys.modules, LOCUSTFILE, raising=False)
        return importlib.import_module(LOCUSTFILE)

    return _import


class FakeResponse:
    """Stand-in for Locust's catch_response response object."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        self.outcome = None
        self.message = None

    def success(self):
        self.outcome = "success"

    def failure(self, message):
        self.outcome = "failure"
        self.message = message


class FakeClient:
    """Records posts and hands back a FakeResponse."""

    def __init__(self, status_code: int):
        self.response = FakeResponse(status_code)
        self.calls = []

    @contextmanager
    def post(self, path, **kwargs):
        self.calls.append((path, kwargs))
        yield self.response


def _fake_user(status_code: int, vu_id: int = 3):
    return SimpleNamespace(vu_id=vu_id, rng=random.Random(1), client=FakeClient(status_code))


class TestLocustfileConfig:
    """Tests for import-time configuration."""

    def test_single_participante_aborts_import(self, import_locustfile):
        """Scenario: PARTICIPANTE_IDS=onlyone."""
        with pytest.raises(ConfigurationError, match="PARTICIPANTE_IDS"):
            import_locustfile(PAREDAO_ID="abc123", PARTICIPANTE_IDS="onlyone")

    def test_missing_paredao_aborts_import(self, import_locustfile):
        with pytest.raises(ConfigurationError, match="PAREDAO_ID"):
            import_locustfile(PARTICIPANTE_IDS="p1,p2")

    def test_valid_environment_configures_user(self, import_locustfile):
        module = import_locustfile(**VALID_ENV)

        assert module.VotingUser.host == "http://api:8080"
        assert module.SCENARIO.rate == 100
        assert module.RUN.participante_ids == ("p1", "p2")


class TestVotingUser:
    """Tests for VotingUser.submit_vote."""

    @pytest.mark.parametrize("status_code", [200, 202])
    def test_success_statuses_mark_success(self, import_locustfile, status_code):
        module = import_locustfile(**VALID_ENV)
        user = _fake_user(status_code)

        module.VotingUser.submit_vote(user)

        assert user.client.response.outcome == "success"

    @pytest.mark.parametrize("status_code", [400, 429, 500])
    def test_other_statuses_mark_failure(self, import_locustfile, status_code):
        module = import_locustfile(**VALID_ENV)
        user = _fake_user(status_code)

        module.VotingUser.submit_vote(user)

        assert user.client.response.outcome == "failure"
        assert str(status_code) in user.client.response.message

    def test_posts_vote_with_traceable_headers(self, import_locustfile):
        module = import_locustfile(**VALID_ENV)
        user = _fake_user(202, vu_id=7)

        module.VotingUser.submit_vote(user)

        assert len(user.client.calls) == 1
        path, kwargs = user.client.calls[0]
        assert path == "/votos"
        assert kwargs["catch_response"] is True
        assert kwargs["json"]["paredao_id"] == "abc123"
        assert kwargs["json"]["participante_id"] in ("p1", "p2")
        assert kwargs["headers"]["User-Agent"] == "votos-perf/7"
        assert kwargs["headers"]["X-Forwarded-For"].startswith("198.18.")


class TestConstantUsersShape:
    """Tests for ConstantUsersShape.tick."""

    @pytest.mark.parametrize("run_time", [0.0, 15.0, 29.9])
    def test_holds_pre_allocated_users_during_run(self, import_locustfile, monkeypatch, run_time):
        module = import_locustfile(**VALID_ENV)
        shape = module.ConstantUsersShape()
        monkeypatch.setattr(shape, "get_run_time", lambda: run_time)

        assert shape.tick() == (10, 10)

    @pytest.mark.parametrize("run_time", [30.0, 45.0])
    def test_stops_after_duration(self, import_locustfile, monkeypatch, run_time):
        module = import_locustfile(**VALID_ENV)
        shape = module.ConstantUsersShape()
        monkeypatch.setattr(shape, "get_run_time", lambda: run_time)

        assert shape.tick() is None
