"""Health data services package."""

from .base import (
    DateInterval,
    HealthStore,
    MetricId,
    ProviderType,
    QueryResult,
    Sample,
    SampleKind,
    SamplePredicate,
    Unit,
    UnitSystem,
    with_retry,
)
from .bridge import CallbackHealthClient, CallbackHealthStore, StoreRequest, await_callback
from .catalog import MetricCatalog, MetricDescriptor, SleepStage, default_catalog
from .dispatcher import QueryDispatcher
from .in_memory import InMemoryHealthStore
from .service import HealthDataService
from .time_range import TimeRange, TimeRangeKind, resolve
from .units import UnitConverter, convert

__all__ = [
    "HealthDataService",
    "HealthStore",
    "InMemoryHealthStore",
    "CallbackHealthStore",
    "CallbackHealthClient",
    "StoreRequest",
    "await_callback",
    "QueryDispatcher",
    "MetricCatalog",
    "MetricDescriptor",
    "SleepStage",
    "default_catalog",
    "UnitConverter",
    "convert",
    "TimeRange",
    "TimeRangeKind",
    "resolve",
    "DateInterval",
    "MetricId",
    "ProviderType",
    "QueryResult",
    "Sample",
    "SampleKind",
    "SamplePredicate",
    "Unit",
    "UnitSystem",
    "with_retry",
]
