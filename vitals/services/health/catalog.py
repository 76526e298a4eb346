"""Static registry of supported metrics."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional, Union

from vitals.core.exceptions import InvalidMetricError, metric_name

from .base import MetricId, ProviderType, SampleKind, Unit, UnitSystem

# Store type identifiers
HEIGHT_TYPE = "HKQuantityTypeIdentifierHeight"
BODY_MASS_TYPE = "HKQuantityTypeIdentifierBodyMass"
STEP_COUNT_TYPE = "HKQuantityTypeIdentifierStepCount"
DISTANCE_WALKING_RUNNING_TYPE = "HKQuantityTypeIdentifierDistanceWalkingRunning"
ACTIVE_ENERGY_TYPE = "HKQuantityTypeIdentifierActiveEnergyBurned"
WORKOUT_TYPE = "HKWorkoutTypeIdentifier"
SLEEP_ANALYSIS_TYPE = "HKCategoryTypeIdentifierSleepAnalysis"


class SleepStage:
    """Category values of the sleep-analysis type."""

    IN_BED = "in_bed"
    ASLEEP_UNSPECIFIED = "asleep_unspecified"
    AWAKE = "awake"
    ASLEEP_CORE = "asleep_core"
    ASLEEP_DEEP = "asleep_deep"
    ASLEEP_REM = "asleep_rem"

    ASLEEP = frozenset({ASLEEP_UNSPECIFIED, ASLEEP_CORE, ASLEEP_DEEP, ASLEEP_REM})


def _sleep_stage(*categories: str) -> ProviderType:
    return ProviderType(SLEEP_ANALYSIS_TYPE, frozenset(categories))


@dataclass(frozen=True)
class MetricDescriptor:
    """How a metric is stored, queried and expressed.

    Attributes:
        metric: The metric described.
        sample_kind: Query strategy for the metric.
        provider_type: Store type handle, or None when the store has no
            counterpart.
        metric_unit: Unit in the metric system; also the provider-native unit.
        imperial_unit: Unit in the imperial system.
    """

    metric: MetricId
    sample_kind: SampleKind
    provider_type: Optional[ProviderType]
    metric_unit: Unit
    imperial_unit: Unit

    def unit_for(self, system: UnitSystem) -> Unit:
        if system == UnitSystem.IMPERIAL:
            return self.imperial_unit
        return self.metric_unit

    @property
    def has_physical_unit(self) -> bool:
        return self.metric_unit != self.imperial_unit


def _descriptor(
    metric: MetricId,
    kind: SampleKind,
    provider_type: Optional[ProviderType],
    metric_unit: Unit,
    imperial_unit: Optional[Unit] = None,
) -> MetricDescriptor:
    return MetricDescriptor(
        metric=metric,
        sample_kind=kind,
        provider_type=provider_type,
        metric_unit=metric_unit,
        imperial_unit=imperial_unit or metric_unit,
    )


_P = SampleKind.POINT_SAMPLE
_C = SampleKind.CUMULATIVE_SUM
_E = SampleKind.EVENT_LIST

DEFAULT_DESCRIPTORS: Mapping[MetricId, MetricDescriptor] = MappingProxyType(
    {
        d.metric: d
        for d in (
            _descriptor(MetricId.HEIGHT, _P, ProviderType(HEIGHT_TYPE), Unit.METER, Unit.INCH),
            _descriptor(
                MetricId.WEIGHT, _P, ProviderType(BODY_MASS_TYPE), Unit.KILOGRAM, Unit.POUND
            ),
            _descriptor(MetricId.STEPS, _C, ProviderType(STEP_COUNT_TYPE), Unit.COUNT),
            _descriptor(
                MetricId.DISTANCE,
                _C,
                ProviderType(DISTANCE_WALKING_RUNNING_TYPE),
                Unit.METER,
                Unit.MILE,
            ),
            _descriptor(
                MetricId.ACTIVE_ENERGY, _C, ProviderType(ACTIVE_ENERGY_TYPE), Unit.KILOCALORIE
            ),
            _descriptor(MetricId.WORKOUT, _E, ProviderType(WORKOUT_TYPE), Unit.MINUTE),
            _descriptor(
                MetricId.SLEEP_ANALYSIS, _E, ProviderType(SLEEP_ANALYSIS_TYPE), Unit.MINUTE
            ),
            _descriptor(
                MetricId.SLEEP_DURATION, _C, _sleep_stage(*SleepStage.ASLEEP), Unit.MINUTE
            ),
            _descriptor(
                MetricId.SLEEP_IN_BED, _C, _sleep_stage(SleepStage.IN_BED), Unit.MINUTE
            ),
            _descriptor(
                MetricId.SLEEP_ASLEEP,
                _C,
                _sleep_stage(SleepStage.ASLEEP_UNSPECIFIED),
                Unit.MINUTE,
            ),
            _descriptor(MetricId.SLEEP_AWAKE, _C, _sleep_stage(SleepStage.AWAKE), Unit.MINUTE),
            _descriptor(
                MetricId.SLEEP_CORE, _C, _sleep_stage(SleepStage.ASLEEP_CORE), Unit.MINUTE
            ),
            _descriptor(
                MetricId.SLEEP_DEEP, _C, _sleep_stage(SleepStage.ASLEEP_DEEP), Unit.MINUTE
            ),
            _descriptor(MetricId.SLEEP_REM, _C, _sleep_stage(SleepStage.ASLEEP_REM), Unit.MINUTE),
        )
    }
)


class MetricCatalog:
    """Registry mapping each metric to its descriptor.

    The default catalog covers every ``MetricId``. A custom table can be
    passed for extensions and tests.
    """

    def __init__(self, descriptors: Optional[Mapping[MetricId, MetricDescriptor]] = None):
        self._descriptors = MappingProxyType(
            dict(descriptors if descriptors is not None else DEFAULT_DESCRIPTORS)
        )

    def __contains__(self, metric: object) -> bool:
        return metric in self._descriptors

    def __iter__(self):
        return iter(self._descriptors)

    def __len__(self) -> int:
        return len(self._descriptors)

    def descriptor(self, metric: Union[MetricId, str]) -> MetricDescriptor:
        """Look up a metric's descriptor.

        Raises:
            InvalidMetricError: If the metric is not registered.
        """
        try:
            return self._descriptors[MetricId(metric)]
        except (KeyError, ValueError):
            raise InvalidMetricError(metric, f"Unknown metric: {metric_name(metric)}") from None

    def unit_for(self, metric: Union[MetricId, str], system: UnitSystem) -> Unit:
        return self.descriptor(metric).unit_for(system)

    def metrics_of_kind(self, kind: SampleKind) -> list[MetricId]:
        return [m for m, d in self._descriptors.items() if d.sample_kind == kind]

    def provider_types(self, metrics: Iterable[Union[MetricId, str]]) -> set[ProviderType]:
        """Provider types needed to read the given metrics.

        Raises:
            InvalidMetricError: If a metric is unknown or has no provider type.
        """
        types = set()
        for metric in metrics:
            descriptor = self.descriptor(metric)
            if descriptor.provider_type is None:
                raise InvalidMetricError(
                    metric, f"No provider type for metric: {metric_name(metric)}"
                )
            types.add(descriptor.provider_type)
        return types


default_catalog = MetricCatalog()
