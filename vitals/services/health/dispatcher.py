"""Query dispatch: picks the store request for each kind of metric."""

from typing import Optional, Union

import structlog

from vitals.core.exceptions import (
    DataUnavailableError,
    HealthDataError,
    InvalidMetricError,
    QueryFailedError,
    metric_name,
)

from .base import (
    DateInterval,
    HealthStore,
    MetricId,
    ProviderType,
    QueryResult,
    Sample,
    SampleKind,
    SamplePredicate,
    UnitSystem,
)
from .catalog import MetricCatalog, MetricDescriptor, default_catalog
from .time_range import to_predicate

logger = structlog.get_logger(__name__)


class QueryDispatcher:
    """Issues the right store query for a metric and interval.

    Results are returned in provider-native (metric-system) units; unit
    conversion is the caller's job. Provider exceptions are wrapped in
    ``QueryFailedError``; errors from the health-data taxonomy raised by a
    store pass through unchanged.
    """

    def __init__(self, store: HealthStore, catalog: Optional[MetricCatalog] = None):
        self._store = store
        self._catalog = catalog if catalog is not None else default_catalog
        self._logger = logger.bind(component="query_dispatcher", store=store.name)

    @property
    def catalog(self) -> MetricCatalog:
        return self._catalog

    def provider_type(self, metric: Union[MetricId, str]) -> ProviderType:
        """Provider type for a metric.

        Raises:
            InvalidMetricError: If the metric is unknown or has no mapping.
        """
        descriptor = self._catalog.descriptor(metric)
        if descriptor.provider_type is None:
            raise InvalidMetricError(metric, f"No provider type for metric: {metric_name(metric)}")
        return descriptor.provider_type

    async def fetch(self, metric: Union[MetricId, str], interval: DateInterval) -> QueryResult:
        """Run the query strategy of ``metric`` over ``interval``.

        Args:
            metric: Metric to read.
            interval: Resolved ``[start, end)`` window. Point metrics only
                use its end as an upper bound.

        Returns:
            QueryResult expressed in the metric system. A point metric whose
            newest sample carries no value is reported as absent (None).

        Raises:
            InvalidMetricError: If the metric cannot be queried.
            NotAuthorizedError: If the store refuses access.
            QueryFailedError: If the store fails.
        """
        descriptor = self._catalog.descriptor(metric)
        provider_type = self.provider_type(descriptor.metric)
        kind = descriptor.sample_kind

        value: Optional[float] = None
        samples: tuple[Sample, ...] = ()

        if kind == SampleKind.POINT_SAMPLE:
            value = await self._call(descriptor, self._latest_value(provider_type, interval))
        elif kind == SampleKind.CUMULATIVE_SUM:
            value = await self._call(descriptor, self._sum(provider_type, interval))
            if value is None:
                value = 0.0
        else:
            samples = tuple(
                await self._call(descriptor, self._samples(provider_type, to_predicate(interval)))
                or ()
            )

        self._logger.debug(
            "metric_fetched",
            metric=descriptor.metric.value,
            kind=kind.value,
            value=value,
            sample_count=len(samples),
        )
        return QueryResult(
            metric=descriptor.metric,
            kind=kind,
            unit_system=UnitSystem.METRIC,
            unit=descriptor.unit_for(UnitSystem.METRIC),
            value=value,
            samples=samples,
        )

    async def query_samples(
        self, metric: Union[MetricId, str], interval: DateInterval
    ) -> list[Sample]:
        """List raw samples of any metric in ``interval``, newest first."""
        descriptor = self._catalog.descriptor(metric)
        provider_type = self.provider_type(descriptor.metric)
        samples = await self._call(descriptor, self._samples(provider_type, to_predicate(interval)))
        return list(samples or [])

    async def _latest_value(
        self, provider_type: ProviderType, interval: DateInterval
    ) -> Optional[float]:
        predicate = SamplePredicate(start=None, end=interval.end, strict_start=True)
        samples = await self._store.execute_sample_query(
            provider_type, predicate, limit=1, sort_descending=True
        )
        if not samples:
            return None
        latest = samples[0]
        if latest.raw_value is None:
            # Only the newest sample is read; older values are not consulted.
            self._logger.debug(
                "latest_sample_without_value",
                provider_type=provider_type.identifier,
                start_time=latest.start_time.isoformat(),
            )
        return latest.raw_value

    async def _sum(self, provider_type: ProviderType, interval: DateInterval) -> Optional[float]:
        return await self._store.execute_statistics_query(provider_type, to_predicate(interval))

    async def _samples(
        self, provider_type: ProviderType, predicate: SamplePredicate
    ) -> list[Sample]:
        return await self._store.execute_sample_query(
            provider_type, predicate, limit=None, sort_descending=True
        )

    async def _call(self, descriptor: MetricDescriptor, request):
        """Await a store request and normalize its failures."""
        try:
            return await request
        except DataUnavailableError:
            self._logger.debug("no_data", metric=descriptor.metric.value)
            return None
        except HealthDataError:
            raise
        except Exception as e:
            self._logger.error(
                "store_query_failed",
                metric=descriptor.metric.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise QueryFailedError(e, metric=descriptor.metric.value) from e
