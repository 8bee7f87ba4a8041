"""Vote request generator.

Each call to generate_vote_request() issues exactly one POST /votos and
returns the outcome of the status check. Nothing is shared between calls
except the read-only RunParameters.
"""
import asyncio
import logging
import random
import time
from typing import Dict, Sequence

import httpx

from .config import RunParameters
from .models import CheckResult, SUCCESS_STATUSES, VoteRequest

logger = logging.getLogger(__name__)

# RFC 2544 benchmarking range
FORWARDED_FOR_PREFIX = "198.18"
USER_AGENT_PREFIX = "votos-perf"


def choose_participante(participante_ids: Sequence[str], rng: random.Random) -> str:
    """Pick one participant uniformly at random."""
    return rng.choice(participante_ids)


def random_forwarded_for(rng: random.Random) -> str:
    """Generate a synthetic client address inside 198.18.0.0/16."""
    return f"{FORWARDED_FOR_PREFIX}.{rng.randint(0, 255)}.{rng.randint(0, 255)}"


def build_user_agent(vu_id: int) -> str:
    return f"{USER_AGENT_PREFIX}/{vu_id}"


def build_headers(vu_id: int, rng: random.Random) -> Dict[str, str]:
    """Build request headers for a single vote."""
    return {
        "Content-Type": "application/json",
        "X-Forwarded-For": random_forwarded_for(rng),
        "User-Agent": build_user_agent(vu_id),
    }


def build_vote(run: RunParameters, rng: random.Random) -> VoteRequest:
    """Build the vote body for the configured paredao."""
    return VoteRequest(
        paredao_id=run.paredao_id,
        participante_id=choose_participante(run.participante_ids, rng)
    )


def is_success_status(status_code: int) -> bool:
    return status_code in SUCCESS_STATUSES


async def generate_vote_request(
    run: RunParameters,
    client: httpx.AsyncClient,
    vu_id: int,
    rng: random.Random
) -> CheckResult:
    """
    Submit one vote and check the response status.

    Network errors and unexpected status codes never raise; they are
    returned as a failed CheckResult so the run keeps going.

    Args:
        run: Shared run parameters
        client: HTTP client used to send the request
        vu_id: Identifier of the calling virtual user
        rng: Random source owned by the calling virtual user

    Returns:
        CheckResult: outcome of the status check
    """
    vote = build_vote(run, rng)
    headers = build_headers(vu_id, rng)

    start_time = time.perf_counter()
    try:
        response = await client.post(
            run.votos_url,
            json=vote.model_dump(),
            headers=headers,
            timeout=run.request_timeout
        )
        latency = time.perf_counter() - start_time

        passed = is_success_status(response.status_code)
        result = CheckResult(
            vu_id=vu_id,
            participante_id=vote.participante_id,
            forwarded_for=headers["X-Forwarded-For"],
            status_code=response.status_code,
            latency=latency,
            passed=passed,
            error=None if passed else f"HTTP {response.status_code}"
        )

    except httpx.HTTPError as e:
        latency = time.perf_counter() - start_time
        logger.debug(f"Vote request failed for VU {vu_id}: {e!r}")
        result = CheckResult(
            vu_id=vu_id,
            participante_id=vote.participante_id,
            forwarded_for=headers["X-Forwarded-For"],
            status_code=None,
            latency=latency,
            passed=False,
            error=type(e).__name__
        )

    if run.sleep_seconds > 0:
        await asyncio.sleep(run.sleep_seconds)

    return result
