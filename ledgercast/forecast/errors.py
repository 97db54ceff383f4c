"""Forecast engine exceptions."""


class ForecastError(Exception):
    """Base class for forecast engine errors."""


class InvalidHorizonError(ForecastError, ValueError):
    """Horizon is not a whole number of days >= 1."""

    def __init__(self, horizon_days, max_days=None):
        self.horizon_days = horizon_days
        self.max_days = max_days
        if max_days is not None:
            message = f"horizon_days must be an integer between 1 and {max_days}, got {horizon_days!r}"
        else:
            message = f"horizon_days must be an integer >= 1, got {horizon_days!r}"
        super().__init__(message)


class SourceUnavailableError(ForecastError):
    """The persistent store could not be queried."""

    def __init__(self, source: str, cause: Exception):
        self.source = source
        self.cause = cause
        super().__init__(f"{source} unavailable: {cause}")


class PersistenceError(ForecastError):
    """The batched write of daily forecasts failed or timed out."""


def validate_horizon(horizon_days, max_days=None) -> int:
    """Reject horizons that are not integers >= 1 (and <= max_days if given)."""
    if isinstance(horizon_days, bool) or not isinstance(horizon_days, int):
        raise InvalidHorizonError(horizon_days, max_days)
    if horizon_days < 1 or (max_days is not None and horizon_days > max_days):
        raise InvalidHorizonError(horizon_days, max_days)
    return horizon_days
