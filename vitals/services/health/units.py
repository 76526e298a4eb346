"""Unit conversion between the metric and imperial systems."""

import math
from fractions import Fraction
from typing import Optional, Union

from .base import MetricId, Unit, UnitSystem
from .catalog import MetricCatalog, default_catalog

# Exact size of each unit in its dimension's base unit (meter, kilogram).
_LENGTH = {
    Unit.METER: Fraction(1),
    Unit.INCH: Fraction("0.0254"),
    Unit.MILE: Fraction("1609.344"),
}
_MASS = {
    Unit.KILOGRAM: Fraction(1),
    Unit.POUND: Fraction("0.45359237"),
}
_DIMENSIONS = (_LENGTH, _MASS)


def conversion_factor(from_unit: Unit, to_unit: Unit) -> Fraction:
    """Exact factor that turns a value in ``from_unit`` into ``to_unit``.

    Raises:
        ValueError: If the units measure different dimensions.
    """
    if from_unit == to_unit:
        return Fraction(1)
    for dimension in _DIMENSIONS:
        if from_unit in dimension and to_unit in dimension:
            return dimension[from_unit] / dimension[to_unit]
    raise ValueError(f"Cannot convert {from_unit.value} to {to_unit.value}")


def convert_unit(value: float, from_unit: Unit, to_unit: Unit) -> float:
    """Convert a value between two units.

    The arithmetic is done on exact rationals, so the result is the
    correctly rounded float of the exact conversion.
    """
    if from_unit == to_unit:
        return value
    factor = conversion_factor(from_unit, to_unit)
    if not math.isfinite(value):
        return value * float(factor)
    return float(Fraction(value) * factor)


class UnitConverter:
    """Converts metric values between unit systems using catalog units."""

    def __init__(self, catalog: Optional[MetricCatalog] = None):
        self._catalog = catalog if catalog is not None else default_catalog

    def convert(
        self,
        value: float,
        metric: Union[MetricId, str],
        from_system: UnitSystem,
        to_system: UnitSystem,
    ) -> float:
        """Convert ``value`` of ``metric`` from one unit system to another.

        Returns the input unchanged when the systems match or the metric has
        the same unit in both systems.
        """
        if from_system == to_system:
            return value
        descriptor = self._catalog.descriptor(metric)
        return convert_unit(
            value, descriptor.unit_for(from_system), descriptor.unit_for(to_system)
        )


def convert(
    value: float,
    metric: Union[MetricId, str],
    from_system: UnitSystem,
    to_system: UnitSystem,
) -> float:
    """Convert with the default catalog."""
    return _default_converter.convert(value, metric, from_system, to_system)


_default_converter = UnitConverter()
