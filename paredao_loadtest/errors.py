"""Exceptions raised by the vote load-test tool."""


class LoadTestError(Exception):
    """Base class for load-test errors."""


class ConfigurationError(LoadTestError):
    """Invalid or missing run configuration.

    Raised once at startup, before any vote is sent. Per-request failures
    are never raised; they are recorded as failed checks instead.
    """
