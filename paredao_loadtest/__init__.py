"""
Constant-arrival-rate load test for the paredao voting API.

This package contains:
- Configuration loading and validation (ScenarioConfig, RunParameters)
- The vote request generator (one POST /votos per invocation)
- A constant-arrival-rate executor with a bounded virtual user pool
- Check tallies and the end-of-run report
"""

from .config import (
    Settings,
    ScenarioConfig,
    RunParameters,
    load_config,
    parse_duration,
    parse_participante_ids,
)
from .errors import LoadTestError, ConfigurationError
from .models import VoteRequest, CheckResult, CHECK_NAME, SUCCESS_STATUSES
from .generator import generate_vote_request, is_success_status
from .executor import ConstantArrivalRateExecutor, VirtualUser, run_load_test
from .metrics import LoadTestMetrics, save_results

__all__ = [
    'Settings',
    'ScenarioConfig',
    'RunParameters',
    'load_config',
    'parse_duration',
    'parse_participante_ids',
    'LoadTestError',
    'ConfigurationError',
    'VoteRequest',
    'CheckResult',
    'CHECK_NAME',
    'SUCCESS_STATUSES',
    'generate_vote_request',
    'is_success_status',
    'ConstantArrivalRateExecutor',
    'VirtualUser',
    'run_load_test',
    'LoadTestMetrics',
    'save_results',
]

__version__ = '1.0.0'
