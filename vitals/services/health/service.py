"""Health data service - the entry point for reading health metrics."""

import threading
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Callable, Optional, Union

import structlog

from vitals.config import Settings, get_settings
from vitals.core.exceptions import InvalidMetricError, NotAuthorizedError, metric_name

from .base import HealthStore, MetricId, ProviderType, QueryResult, Sample, SampleKind, UnitSystem
from .catalog import MetricCatalog, default_catalog
from .dispatcher import QueryDispatcher
from .time_range import TimeRange, local_now, resolve
from .units import UnitConverter

logger = structlog.get_logger(__name__)


class HealthDataService:
    """Reads health metrics from a store in the active unit system.

    Composes time-range resolution, query dispatch and unit conversion.
    The active unit system is the only mutable state; it is guarded by a
    lock so any caller sees a fully written value.

    Example:
        ```python
        service = HealthDataService(InMemoryHealthStore())
        service.set_unit_system(UnitSystem.IMPERIAL)
        steps = await service.get(MetricId.STEPS, TimeRange.today())
        ```
    """

    def __init__(
        self,
        store: HealthStore,
        catalog: Optional[MetricCatalog] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the service.

        Args:
            store: Health store queries are sent to.
            catalog: Metric catalog. Defaults to the built-in catalog.
            settings: Settings. Defaults to ``get_settings()``.
            clock: Returns "now" for range resolution. Defaults to the
                local calendar in the configured time zone.
        """
        self._settings = settings or get_settings()
        self._catalog = catalog if catalog is not None else default_catalog
        self._store = store
        self._dispatcher = QueryDispatcher(store, self._catalog)
        self._converter = UnitConverter(self._catalog)
        self._clock = clock or (lambda: local_now(self._settings.tzinfo))

        self._lock = threading.Lock()
        self._unit_system = UnitSystem(self._settings.default_unit_system)
        self._authorized: set[ProviderType] = set()

        self._logger = logger.bind(component="health_data_service", store=store.name)

    # Unit system

    def get_unit_system(self) -> UnitSystem:
        with self._lock:
            return self._unit_system

    def set_unit_system(self, system: UnitSystem) -> None:
        system = UnitSystem(system)
        with self._lock:
            self._unit_system = system
        self._logger.info("unit_system_changed", unit_system=system.value)

    @property
    def unit_system(self) -> UnitSystem:
        return self.get_unit_system()

    @unit_system.setter
    def unit_system(self, system: UnitSystem) -> None:
        self.set_unit_system(system)

    @property
    def catalog(self) -> MetricCatalog:
        return self._catalog

    # Authorization

    async def request_authorization(self, metrics: Iterable[Union[MetricId, str]]) -> bool:
        """Ask the store for read access to ``metrics``.

        Returns:
            True once access is granted.

        Raises:
            InvalidMetricError: If a metric has no provider mapping.
            NotAuthorizedError: If access is denied or the request fails.
        """
        metrics = list(metrics)
        types = self._catalog.provider_types(metrics)

        try:
            granted = await self._store.request_authorization(types)
        except NotAuthorizedError:
            raise
        except Exception as e:
            self._logger.error("authorization_failed", error=str(e))
            raise NotAuthorizedError(f"Authorization request failed: {e}", metrics) from e

        if not granted:
            self._logger.warning("authorization_denied", metrics=[metric_name(m) for m in metrics])
            raise NotAuthorizedError("Authorization denied", metrics)

        with self._lock:
            self._authorized.update(types)
        self._logger.info("authorization_granted", count=len(types))
        return True

    def _check_authorized(self, metric: Union[MetricId, str]) -> None:
        if not self._settings.enforce_authorization:
            return
        provider_type = self._dispatcher.provider_type(metric)
        with self._lock:
            authorized = provider_type in self._authorized
        if not authorized:
            raise NotAuthorizedError(f"Not authorized to read {metric_name(metric)}", [metric])

    # Queries

    async def get_result(
        self, metric: Union[MetricId, str], time_range: TimeRange
    ) -> QueryResult:
        """Fetch ``metric`` over ``time_range`` as a typed result.

        Point and cumulative values are converted into the active unit
        system; event samples are returned as stored.
        """
        descriptor = self._catalog.descriptor(metric)
        self._check_authorized(descriptor.metric)

        interval = resolve(time_range, now=self._clock())
        raw = await self._dispatcher.fetch(descriptor.metric, interval)

        if raw.kind == SampleKind.EVENT_LIST:
            return raw

        target = self.get_unit_system()
        value = raw.value
        if value is not None:
            value = self._converter.convert(value, descriptor.metric, raw.unit_system, target)
        return replace(
            raw, value=value, unit_system=target, unit=descriptor.unit_for(target)
        )

    async def get(
        self, metric: Union[MetricId, str], time_range: TimeRange
    ) -> Optional[float]:
        """Value of a point or cumulative metric in the active unit system.

        Returns:
            The value; None only for a point metric without recorded data.

        Raises:
            InvalidMetricError: For event metrics or unmapped metrics.
            NotAuthorizedError: If read access is missing.
            QueryFailedError: If the store fails.
        """
        descriptor = self._catalog.descriptor(metric)
        if descriptor.sample_kind == SampleKind.EVENT_LIST:
            raise InvalidMetricError(
                metric, f"{metric_name(metric)} is an event metric, use get_samples"
            )
        result = await self.get_result(descriptor.metric, time_range)
        return result.value

    async def get_samples(
        self, metric: Union[MetricId, str], time_range: TimeRange
    ) -> list[Sample]:
        """Events of an event metric in ``time_range``, newest first."""
        descriptor = self._catalog.descriptor(metric)
        if descriptor.sample_kind != SampleKind.EVENT_LIST:
            raise InvalidMetricError(
                metric, f"{metric_name(metric)} is not an event metric, use get"
            )
        result = await self.get_result(descriptor.metric, time_range)
        return list(result.samples)

    async def query_health_data(
        self, metric: Union[MetricId, str], time_range: TimeRange
    ) -> list[Sample]:
        """Raw samples of any metric in ``time_range``, newest first."""
        descriptor = self._catalog.descriptor(metric)
        self._check_authorized(descriptor.metric)
        interval = resolve(time_range, now=self._clock())
        return await self._dispatcher.query_samples(descriptor.metric, interval)

    def convert(
        self,
        value: float,
        metric: Union[MetricId, str],
        from_system: UnitSystem,
        to_system: UnitSystem,
    ) -> float:
        return self._converter.convert(value, metric, from_system, to_system)

    # Per-metric accessors

    async def get_height(self) -> Optional[float]:
        return await self.get(MetricId.HEIGHT, TimeRange.today())

    async def get_weight(self) -> Optional[float]:
        return await self.get(MetricId.WEIGHT, TimeRange.today())

    async def get_steps(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.STEPS, time_range)

    async def get_distance(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.DISTANCE, time_range)

    async def get_active_energy(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.ACTIVE_ENERGY, time_range)

    async def get_workouts(self, time_range: TimeRange) -> list[Sample]:
        return await self.get_samples(MetricId.WORKOUT, time_range)

    async def get_sleep_analysis(self, time_range: TimeRange) -> list[Sample]:
        return await self.get_samples(MetricId.SLEEP_ANALYSIS, time_range)

    async def get_sleep_duration(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_DURATION, time_range)

    async def get_sleep_in_bed(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_IN_BED, time_range)

    async def get_sleep_asleep(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_ASLEEP, time_range)

    async def get_sleep_awake(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_AWAKE, time_range)

    async def get_sleep_core(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_CORE, time_range)

    async def get_sleep_deep(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_DEEP, time_range)

    async def get_sleep_rem(self, time_range: TimeRange) -> float:
        return await self.get(MetricId.SLEEP_REM, time_range)

    async def close(self) -> None:
        """Close the underlying store."""
        await self._store.close()
