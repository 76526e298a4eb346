"""Pytest fixtures for health-data access tests."""

from datetime import datetime, timedelta, timezone

import pytest

from vitals.config import Settings
from vitals.services.health import HealthDataService, InMemoryHealthStore, Sample

# Fixed anchor for range resolution: Friday afternoon, UTC
FIXED_NOW = datetime(2024, 3, 15, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    """The moment every service in the tests considers "now"."""
    return FIXED_NOW


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment."""
    return Settings(
        environment="development",
        default_unit_system="metric",
        timezone="UTC",
        enforce_authorization=False,
    )


@pytest.fixture
def store() -> InMemoryHealthStore:
    """Empty in-memory health store."""
    return InMemoryHealthStore()


@pytest.fixture
def service(store: InMemoryHealthStore, settings: Settings, now: datetime) -> HealthDataService:
    """Service over the in-memory store with a fixed clock."""
    return HealthDataService(store, settings=settings, clock=lambda: now)


@pytest.fixture
def make_sample():
    """Factory fixture for samples relative to the fixed clock."""

    def _sample(
        hours_ago: float,
        value=None,
        minutes: float = 1,
        category=None,
        unit=None,
    ) -> Sample:
        start = FIXED_NOW - timedelta(hours=hours_ago)
        return Sample(
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            raw_value=value,
            raw_unit=unit,
            category=category,
        )

    return _sample
