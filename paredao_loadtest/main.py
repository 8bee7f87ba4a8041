"""Command line entry point for the vote load test.

Usage:
    # Configuration from the environment (k6-compatible variable names)
    PAREDAO_ID=abc123 PARTICIPANTE_IDS=p1,p2 votos-loadtest

    # Override from the command line
    votos-loadtest --paredao-id abc123 --participante-ids p1,p2 --rate 500 --duration 1m

    # Locust alternative
    locust -f paredao_loadtest/locustfile.py --headless
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx

from .config import LOG_LEVELS, RunParameters, build_config, load_settings
from .errors import ConfigurationError
from .executor import run_load_test
from .metrics import LoadTestMetrics, save_results

logger = logging.getLogger("paredao_loadtest")

EXIT_OK = 0
EXIT_PREFLIGHT_FAILED = 1
EXIT_CONFIG_ERROR = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Load test POST /votos at a constant arrival rate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Every option falls back to the environment variable shown in brackets.

Examples:
  votos-loadtest --paredao-id abc123 --participante-ids p1,p2
  votos-loadtest --rate 200 --duration 1m --pre-vus 50 --max-vus 100 --output results.json
        """
    )
    parser.add_argument('--rate', type=int, help='Target requests per second [RATE, default 1000]')
    parser.add_argument('--duration', help='Run duration, e.g. 30s or 1m30s [DURATION, default 30s]')
    parser.add_argument('--pre-vus', type=int, help='Pre-allocated virtual users [PRE_VUS, default 200]')
    parser.add_argument('--max-vus', type=int, help='Maximum virtual users [MAX_VUS, default 400]')
    parser.add_argument('--host', help='API base URL [API_BASE, default http://localhost:8080]')
    parser.add_argument('--paredao-id', help='Target paredao id [PAREDAO_ID, required]')
    parser.add_argument(
        '--participante-ids',
        help='Comma-separated participante ids, at least two [PARTICIPANTE_IDS, required]'
    )
    parser.add_argument('--sleep', type=float, help='Pause after each request in seconds [SLEEP, default 0.001]')
    parser.add_argument('--timeout', type=float, help='Per-request timeout in seconds [REQUEST_TIMEOUT, default 10]')
    parser.add_argument('--log-level', help='Logging level [LOG_LEVEL, default INFO]')
    parser.add_argument('--output', help='Write a JSON summary of the run to this file')
    parser.add_argument(
        '--check-health',
        action='store_true',
        help='Abort unless GET {host}/healthz answers 200 before the run'
    )
    parser.add_argument('--env-file', default='.env', help='Optional .env file to read (default: .env)')
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=LOG_LEVELS.get(level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def settings_overrides(args: argparse.Namespace) -> dict:
    return {
        "RATE": args.rate,
        "DURATION": args.duration,
        "PRE_VUS": args.pre_vus,
        "MAX_VUS": args.max_vus,
        "API_BASE": args.host,
        "PAREDAO_ID": args.paredao_id,
        "PARTICIPANTE_IDS": args.participante_ids,
        "SLEEP": args.sleep,
        "REQUEST_TIMEOUT": args.timeout,
        "LOG_LEVEL": args.log_level,
    }


def check_health(run: RunParameters, transport: Optional[httpx.BaseTransport] = None) -> bool:
    """Return True if the API health endpoint answers 200."""
    try:
        with httpx.Client(transport=transport, timeout=run.request_timeout) as client:
            response = client.get(run.healthz_url)
    except httpx.HTTPError as e:
        logger.error(f"Health check failed for {run.healthz_url}: {e!r}")
        return False

    if response.status_code != 200:
        logger.error(f"Health check failed for {run.healthz_url}: HTTP {response.status_code}")
        return False

    logger.info(f"API healthy at {run.api_base}")
    return True


def main(
    argv: Optional[List[str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    health_transport: Optional[httpx.BaseTransport] = None
) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    overrides = settings_overrides(args)
    env_file = args.env_file or None

    try:
        settings = load_settings(overrides, env_file=env_file)
        scenario, run = build_config(settings)
    except ConfigurationError as e:
        setup_logging(args.log_level or "INFO")
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(settings.LOG_LEVEL)

    if args.check_health and not check_health(run, transport=health_transport):
        return EXIT_PREFLIGHT_FAILED

    metrics = LoadTestMetrics()
    try:
        asyncio.run(run_load_test(scenario, run, metrics=metrics, transport=transport))
    except KeyboardInterrupt:
        logger.warning("Test interrupted by user")
        if metrics.end_time is None:
            metrics.finish()

    print(metrics.generate_report())

    if args.output:
        save_results(metrics, scenario, run, args.output)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
