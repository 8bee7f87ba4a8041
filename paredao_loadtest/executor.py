"""Constant-arrival-rate driver for the vote generator.

Arrivals are started at a fixed rate regardless of how long each one
takes. Every arrival runs on a virtual user (VU) taken from a pool; the
pool starts with the pre-allocated VUs and grows up to max_vus when all
are busy. Arrivals that find the pool exhausted are dropped, not queued.
"""
import asyncio
import logging
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Deque, Optional, Set

import httpx

from .config import RunParameters, ScenarioConfig
from .generator import generate_vote_request
from .metrics import LoadTestMetrics
from .models import CheckResult

logger = logging.getLogger(__name__)


@dataclass
class VirtualUser:
    """One concurrent worker with its own random source."""
    id: int
    rng: random.Random = field(default_factory=random.Random)


Iteration = Callable[[VirtualUser], Awaitable[CheckResult]]


class ConstantArrivalRateExecutor:
    """Start iterations at scenario.rate per time unit with a bounded VU pool."""

    def __init__(self, scenario: ScenarioConfig, iteration: Iteration, metrics: LoadTestMetrics):
        self._scenario = scenario
        self._iteration = iteration
        self._metrics = metrics

        self._idle: Deque[VirtualUser] = deque(
            VirtualUser(id=vu_id) for vu_id in range(1, scenario.pre_allocated_vus + 1)
        )
        self._allocated = scenario.pre_allocated_vus
        self._in_flight: Set[asyncio.Task] = set()
        self._stop_event: Optional[asyncio.Event] = None
        self._warned_exhausted = False

    @property
    def allocated_vus(self) -> int:
        return self._allocated

    @property
    def active_vus(self) -> int:
        return self._allocated - len(self._idle)

    def stop(self):
        """Stop scheduling new arrivals; in-flight iterations still finish."""
        if self._stop_event is not None:
            self._stop_event.set()

    async def run(self) -> LoadTestMetrics:
        """Run the whole schedule and wait for in-flight iterations."""
        loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        interval = self._scenario.time_unit / self._scenario.rate
        total = self._scenario.total_iterations

        logger.info(
            f"Starting constant arrival rate: {self._scenario.rate} iterations/"
            f"{self._scenario.time_unit:g}s for {self._scenario.duration} "
            f"({total} iterations, {self._scenario.pre_allocated_vus}-{self._scenario.max_vus} VUs)"
        )

        self._metrics.start()
        started_at = loop.time()
        try:
            for index in range(total):
                if await self._wait_until(started_at + index * interval):
                    logger.info(f"Stop requested after {index} scheduled iterations")
                    break

                vu = self._acquire_vu()
                if vu is None:
                    self._metrics.record_dropped()
                    continue

                task = asyncio.create_task(self._run_iteration(vu))
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)

            if self._in_flight:
                logger.info(f"Schedule finished, waiting for {len(self._in_flight)} in-flight iterations")
                await asyncio.gather(*list(self._in_flight))
        finally:
            self._metrics.finish()

        logger.info(
            f"Run complete: {self._metrics.total_requests} requests, "
            f"{self._metrics.dropped_iterations} dropped, {self._allocated} VUs allocated"
        )
        return self._metrics

    async def _wait_until(self, deadline: float) -> bool:
        """Sleep until deadline; return True if a stop was requested."""
        delay = deadline - asyncio.get_running_loop().time()
        if delay > 0:
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass
        return self._stop_event.is_set()

    def _acquire_vu(self) -> Optional[VirtualUser]:
        if self._idle:
            return self._idle.popleft()

        if self._allocated < self._scenario.max_vus:
            self._allocated += 1
            logger.debug(f"All VUs busy, allocating VU {self._allocated}")
            return VirtualUser(id=self._allocated)

        if not self._warned_exhausted:
            logger.warning(
                f"Insufficient VUs: all {self._scenario.max_vus} are busy, dropping iterations"
            )
            self._warned_exhausted = True
        return None

    async def _run_iteration(self, vu: VirtualUser):
        try:
            result = await self._iteration(vu)
            self._metrics.record_check(result)
        except Exception as e:
            logger.error(f"Iteration on VU {vu.id} interrupted: {e!r}")
            self._metrics.record_interrupted(type(e).__name__)
        finally:
            self._idle.append(vu)


async def run_load_test(
    scenario: ScenarioConfig,
    run: RunParameters,
    metrics: Optional[LoadTestMetrics] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> LoadTestMetrics:
    """
    Drive generate_vote_request() against the target API for one scenario.

    Args:
        scenario: Arrival rate, duration and VU bounds
        run: Target API and vote parameters
        metrics: Collector to record into (a new one by default)
        transport: Optional httpx transport, mainly for tests

    Returns:
        LoadTestMetrics: the populated collector
    """
    metrics = metrics if metrics is not None else LoadTestMetrics()
    limits = httpx.Limits(
        max_connections=scenario.max_vus,
        max_keepalive_connections=scenario.max_vus
    )

    async with httpx.AsyncClient(transport=transport, limits=limits, timeout=run.request_timeout) as client:
        async def iteration(vu: VirtualUser) -> CheckResult:
            return await generate_vote_request(run, client, vu.id, vu.rng)

        executor = ConstantArrivalRateExecutor(scenario, iteration, metrics)
        logger.info(f"Target: {run.votos_url} (paredao={run.paredao_id}, participantes={len(run.participante_ids)})")
        await executor.run()

    return metrics
