"""Health data model and the abstract health-store interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from vitals.core.exceptions import QueryFailedError

logger = structlog.get_logger(__name__)


class UnitSystem(str, Enum):
    """Convention used to express physical quantities."""

    METRIC = "metric"
    IMPERIAL = "imperial"


class SampleKind(str, Enum):
    """How a metric's data is queried and aggregated."""

    POINT_SAMPLE = "point_sample"  # latest single measurement
    CUMULATIVE_SUM = "cumulative_sum"  # summed over an interval
    EVENT_LIST = "event_list"  # discrete events in an interval


class MetricId(str, Enum):
    """Supported health metrics."""

    # Body measurements
    HEIGHT = "height"
    WEIGHT = "weight"

    # Activity
    STEPS = "steps"
    DISTANCE = "distance"
    ACTIVE_ENERGY = "active_energy"
    WORKOUT = "workout"

    # Sleep
    SLEEP_ANALYSIS = "sleep_analysis"
    SLEEP_DURATION = "sleep_duration"
    SLEEP_IN_BED = "sleep_in_bed"
    SLEEP_ASLEEP = "sleep_asleep"
    SLEEP_AWAKE = "sleep_awake"
    SLEEP_CORE = "sleep_core"
    SLEEP_DEEP = "sleep_deep"
    SLEEP_REM = "sleep_rem"


class Unit(str, Enum):
    """Physical unit tokens."""

    METER = "m"
    INCH = "in"
    MILE = "mi"
    KILOGRAM = "kg"
    POUND = "lb"
    KILOCALORIE = "kcal"
    COUNT = "count"
    MINUTE = "min"


@dataclass(frozen=True)
class ProviderType:
    """Handle into the store's type system.

    Attributes:
        identifier: Store-level type identifier.
        categories: Category values selected out of a category type, or None
            for every sample of the type.
    """

    identifier: str
    categories: Optional[frozenset[str]] = None

    def matches(self, category: Optional[str]) -> bool:
        return self.categories is None or category in self.categories


@dataclass(frozen=True)
class DateInterval:
    """Half-open [start, end) span of absolute time."""

    start: datetime
    end: datetime


@dataclass(frozen=True)
class SamplePredicate:
    """Time window a store query is restricted to.

    With ``strict_start`` a sample matches when its start time lies in
    ``[start, end)``; otherwise any overlap with the window matches.
    A missing bound leaves that side of the window open.
    """

    start: Optional[datetime] = None
    end: Optional[datetime] = None
    strict_start: bool = True

    def matches(self, sample: "Sample") -> bool:
        if self.strict_start:
            if self.start is not None and sample.start_time < self.start:
                return False
            if self.end is not None and sample.start_time >= self.end:
                return False
            return True
        if self.start is not None and sample.end_time <= self.start:
            return False
        if self.end is not None and sample.start_time >= self.end:
            return False
        return True


@dataclass(frozen=True)
class Sample:
    """A record returned by the health store."""

    start_time: datetime
    end_time: datetime
    raw_value: Optional[float] = None
    raw_unit: Optional[str] = None
    category: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def duration_minutes(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat(),
            "raw_value": self.raw_value,
            "raw_unit": self.raw_unit,
            "category": self.category,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class QueryResult:
    """Typed outcome of a metric query.

    ``value`` is set for point and cumulative metrics (None only when a
    point metric has no recorded data); ``samples`` holds event-list results
    ordered by start time, newest first.
    """

    metric: MetricId
    kind: SampleKind
    unit_system: UnitSystem
    unit: Unit
    value: Optional[float] = None
    samples: tuple[Sample, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric": self.metric.value,
            "kind": self.kind.value,
            "unit_system": self.unit_system.value,
            "unit": self.unit.value,
            "value": self.value,
            "samples": [s.to_dict() for s in self.samples],
        }


class HealthStore(ABC):
    """Abstract interface of the external health-data store.

    Implementations adapt a concrete provider (an on-device store, an
    export, a fake for tests) to the three requests the access layer
    issues. Values are returned in the provider's native units, which are
    the metric-system units of each type.
    """

    name: str = ""  # Override in subclass

    @abstractmethod
    async def request_authorization(self, types_to_read: set[ProviderType]) -> bool:
        """Ask the provider for read access to the given types.

        Returns:
            True if access was granted.
        """
        pass

    @abstractmethod
    async def execute_sample_query(
        self,
        provider_type: ProviderType,
        predicate: Optional[SamplePredicate],
        limit: Optional[int] = None,
        sort_descending: bool = True,
    ) -> list[Sample]:
        """Fetch samples of a type.

        Args:
            provider_type: Type (and optional categories) to read.
            predicate: Time window, or None for all samples.
            limit: Maximum number of samples, None for no limit.
            sort_descending: Sort by start time, newest first.

        Returns:
            Matching samples in the requested order.
        """
        pass

    @abstractmethod
    async def execute_statistics_query(
        self, provider_type: ProviderType, predicate: SamplePredicate
    ) -> Optional[float]:
        """Sum the values of a type over a window.

        Returns:
            The cumulative sum, or None when no samples match.
        """
        pass

    async def close(self) -> None:
        """Release provider resources.

        Override in subclass if cleanup is needed.
        """
        return None


def with_retry(func):
    """Decorator adding retry with exponential backoff to an async accessor.

    The access layer never retries on its own; callers that want retries
    wrap the accessors they use.
    """
    return retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((QueryFailedError, ConnectionError)),
        reraise=True,
        before_sleep=lambda retry_state: logger.warning(
            "retry_attempt", attempt=retry_state.attempt_number, func=func.__name__
        ),
    )(func)
