"""Locust version of the vote load test.

Uses the same environment variables as votos-loadtest. A configuration
error is raised at import time, so Locust aborts before spawning users.

Run:
    PAREDAO_ID=abc123 PARTICIPANTE_IDS=p1,p2 \\
        locust -f paredao_loadtest/locustfile.py --headless

Each of the PRE_VUS users runs at RATE / PRE_VUS votes per second, so the
aggregate arrival rate is RATE. The shape holds that user count for
DURATION and then stops the run.
"""
import itertools
import logging
import random
import time

from locust import HttpUser, LoadTestShape, constant_throughput, events, task

from paredao_loadtest.config import load_config
from paredao_loadtest.generator import build_headers, build_vote, is_success_status
from paredao_loadtest.models import CHECK_NAME

logger = logging.getLogger(__name__)

SCENARIO, RUN = load_config()

_vu_ids = itertools.count(start=1)


class VotingUser(HttpUser):
    """Simulated voter submitting one vote per task."""

    host = RUN.api_base
    wait_time = constant_throughput(SCENARIO.rate / SCENARIO.pre_allocated_vus)

    def on_start(self):
        self.vu_id = next(_vu_ids)
        self.rng = random.Random()

    @task
    def submit_vote(self):
        vote = build_vote(RUN, self.rng)

        with self.client.post(
            "/votos",
            json=vote.model_dump(),
            headers=build_headers(self.vu_id, self.rng),
            timeout=RUN.request_timeout,
            catch_response=True,
            name="/votos"
        ) as response:
            if is_success_status(response.status_code):
                response.success()
            else:
                response.failure(f"{CHECK_NAME}: got status {response.status_code}")

        if RUN.sleep_seconds > 0:
            time.sleep(RUN.sleep_seconds)


class ConstantUsersShape(LoadTestShape):
    """Hold PRE_VUS users for DURATION, then stop."""

    def tick(self):
        if self.get_run_time() < SCENARIO.duration_seconds:
            return (SCENARIO.pre_allocated_vus, SCENARIO.pre_allocated_vus)
        return None


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    logger.info(
        f"Starting vote load test against {RUN.votos_url}: {SCENARIO.rate} req/s "
        f"for {SCENARIO.duration} with {SCENARIO.pre_allocated_vus} users"
    )


@events.test_stop.add_listener
def on_test_stop(environment, **kwargs):
    stats = environment.stats.total
    logger.info(
        f"Vote load test finished: {stats.num_requests} requests, {stats.num_failures} failed checks"
    )
