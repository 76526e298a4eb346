from vitals.core.exceptions import (
    DataUnavailableError,
    HealthDataError,
    InvalidMetricError,
    NotAuthorizedError,
    QueryFailedError,
)

__all__ = [
    "HealthDataError",
    "NotAuthorizedError",
    "InvalidMetricError",
    "DataUnavailableError",
    "QueryFailedError",
]
