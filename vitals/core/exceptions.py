"""Custom exception classes for the health-data access layer."""

from typing import Any, Optional


def metric_name(metric: Any) -> str:
    """Plain name of a metric identifier or enum member."""
    return str(getattr(metric, "value", metric))


class HealthDataError(Exception):
    """Base exception for health-data access."""

    def __init__(
        self,
        message: str,
        code: str = "HEALTH_DATA_ERROR",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class NotAuthorizedError(HealthDataError):
    """Read access to health data was denied or never granted."""

    def __init__(self, message: str = "Not authorized to read health data", metrics: Any = None):
        super().__init__(
            message=message,
            code="NOT_AUTHORIZED",
            details={"metrics": sorted(metric_name(m) for m in metrics)} if metrics else None,
        )


class InvalidMetricError(HealthDataError):
    """A requested metric has no usable provider mapping for the operation."""

    def __init__(self, metric: Any, message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid metric: {metric_name(metric)}",
            code="INVALID_METRIC",
            details={"metric": metric_name(metric)},
        )
        self.metric = metric


class DataUnavailableError(HealthDataError):
    """The store holds no data for an otherwise valid query."""

    def __init__(self, message: str = "No data available"):
        super().__init__(message=message, code="DATA_UNAVAILABLE")


class QueryFailedError(HealthDataError):
    """The external store failed to execute a request."""

    def __init__(self, cause: BaseException, metric: Any = None):
        super().__init__(
            message=f"Health store query failed: {cause}",
            code="QUERY_FAILED",
            details={
                "cause": type(cause).__name__,
                **({"metric": metric_name(metric)} if metric is not None else {}),
            },
        )
        self.cause = cause
