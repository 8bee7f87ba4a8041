"""Configuration management for the vote load test.

Values come from environment variables (or a .env file) and may be
overridden from the command line. They are validated once at startup and
frozen into two immutable objects shared by every virtual user.
"""
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_BARE_NUMBER = re.compile(r"\d+(?:\.\d+)?")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}
LOG_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


class Settings(BaseSettings):
    """Load-test settings loaded from environment variables."""

    # Scenario
    RATE: int = 1000
    DURATION: str = "30s"
    PRE_VUS: int = 200
    MAX_VUS: int = 400

    # Target API
    API_BASE: str = "http://localhost:8080"
    PAREDAO_ID: Optional[str] = None
    PARTICIPANTE_IDS: str = ""

    # Request behaviour
    SLEEP: float = 0.001
    REQUEST_TIMEOUT: float = 10.0

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@dataclass(frozen=True)
class ScenarioConfig:
    """Arrival-rate scenario handed to the executor."""

    rate: int
    duration: str
    duration_seconds: float
    pre_allocated_vus: int
    max_vus: int
    time_unit: float = 1.0

    @property
    def total_iterations(self) -> int:
        """Number of arrivals scheduled over the whole run."""
        # floor(rate * duration / time_unit), tolerant of float error
        return int(round(self.rate * self.duration_seconds / self.time_unit, 9))


@dataclass(frozen=True)
class RunParameters:
    """Parameters shared read-only by every vote request."""

    api_base: str
    paredao_id: str
    participante_ids: Tuple[str, ...]
    sleep_seconds: float = 0.001
    request_timeout: float = 10.0

    @property
    def votos_url(self) -> str:
        return f"{self.api_base}/votos"

    @property
    def healthz_url(self) -> str:
        return f"{self.api_base}/healthz"


def parse_duration(text: str) -> float:
    """
    Parse a duration such as "30s", "500ms" or "1m30s" into seconds.

    A bare number is taken as seconds.

    Raises:
        ConfigurationError: if the text is not a valid duration
    """
    value = (text or "").strip()
    if not value:
        raise ConfigurationError("DURATION must not be empty")

    if _BARE_NUMBER.fullmatch(value):
        return float(value)

    seconds = 0.0
    position = 0
    for match in _DURATION_PART.finditer(value):
        if match.start() != position:
            break
        amount, unit = match.groups()
        seconds += float(amount) * _DURATION_UNITS[unit]
        position = match.end()

    if position == 0 or position != len(value):
        raise ConfigurationError(f"Invalid DURATION '{text}' (expected e.g. 30s, 1m30s, 500ms)")
    return seconds


def parse_participante_ids(text: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated id list, dropping blank entries."""
    if not text:
        return ()
    return tuple(item.strip() for item in text.split(",") if item.strip())


def load_settings(overrides: Optional[Dict[str, Any]] = None, env_file: Optional[str] = ".env") -> Settings:
    """Build Settings from the environment, with non-None overrides on top."""
    values = {key: value for key, value in (overrides or {}).items() if value is not None}
    try:
        return Settings(_env_file=env_file, **values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid load-test settings: {e}") from e


def build_config(settings: Settings) -> Tuple[ScenarioConfig, RunParameters]:
    """
    Validate settings and freeze them into the scenario and run parameters.

    Raises:
        ConfigurationError: if any required value is missing or inconsistent
    """
    paredao_id = (settings.PAREDAO_ID or "").strip()
    if not paredao_id:
        raise ConfigurationError("PAREDAO_ID must be set")

    participante_ids = parse_participante_ids(settings.PARTICIPANTE_IDS)
    if len(participante_ids) < 2:
        raise ConfigurationError(
            "PARTICIPANTE_IDS must list at least two comma-separated ids "
            f"(got {len(participante_ids)})"
        )

    if settings.RATE <= 0:
        raise ConfigurationError(f"RATE must be positive (got {settings.RATE})")
    if settings.PRE_VUS < 1:
        raise ConfigurationError(f"PRE_VUS must be at least 1 (got {settings.PRE_VUS})")
    if settings.PRE_VUS > settings.MAX_VUS:
        raise ConfigurationError(
            f"PRE_VUS ({settings.PRE_VUS}) must not exceed MAX_VUS ({settings.MAX_VUS})"
        )

    if settings.LOG_LEVEL.upper() not in LOG_LEVELS:
        raise ConfigurationError(
            f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)} (got '{settings.LOG_LEVEL}')"
        )

    duration_seconds = parse_duration(settings.DURATION)
    if duration_seconds <= 0:
        raise ConfigurationError(f"DURATION must be positive (got '{settings.DURATION}')")

    if settings.SLEEP < 0:
        raise ConfigurationError(f"SLEEP must not be negative (got {settings.SLEEP})")
    if settings.REQUEST_TIMEOUT <= 0:
        raise ConfigurationError(f"REQUEST_TIMEOUT must be positive (got {settings.REQUEST_TIMEOUT})")

    scenario = ScenarioConfig(
        rate=settings.RATE,
        duration=settings.DURATION,
        duration_seconds=duration_seconds,
        pre_allocated_vus=settings.PRE_VUS,
        max_vus=settings.MAX_VUS,
    )
    run = RunParameters(
        api_base=settings.API_BASE.rstrip("/"),
        paredao_id=paredao_id,
        participante_ids=participante_ids,
        sleep_seconds=settings.SLEEP,
        request_timeout=settings.REQUEST_TIMEOUT,
    )
    logger.debug(f"Loaded config: scenario={scenario}, run={run}")
    return scenario, run


def load_config(
    overrides: Optional[Dict[str, Any]] = None,
    env_file: Optional[str] = ".env"
) -> Tuple[ScenarioConfig, RunParameters]:
    """Load settings and return the validated scenario and run parameters."""
    return build_config(load_settings(overrides, env_file=env_file))
