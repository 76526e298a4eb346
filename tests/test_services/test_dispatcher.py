"""Tests for the query dispatcher."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from vitals.core.exceptions import (
    DataUnavailableError,
    InvalidMetricError,
    NotAuthorizedError,
    QueryFailedError,
)
from vitals.services.health import (
    HealthStore,
    InMemoryHealthStore,
    MetricCatalog,
    MetricDescriptor,
    MetricId,
    QueryDispatcher,
    SampleKind,
    SleepStage,
    TimeRange,
    Unit,
    UnitSystem,
    resolve,
)
from vitals.services.health.catalog import (
    HEIGHT_TYPE,
    SLEEP_ANALYSIS_TYPE,
    STEP_COUNT_TYPE,
    WORKOUT_TYPE,
)


@pytest.fixture
def today(now):
    return resolve(TimeRange.today(), now=now)


@pytest.fixture
def dispatcher(store):
    return QueryDispatcher(store)


@pytest.fixture
def mock_store(mocker):
    """HealthStore double with async query methods."""
    store = mocker.MagicMock(spec=HealthStore)
    store.name = "mock"
    store.execute_sample_query = AsyncMock(return_value=[])
    store.execute_statistics_query = AsyncMock(return_value=None)
    store.request_authorization = AsyncMock(return_value=True)
    return store


class TestPointStrategy:
    """Latest-sample queries."""

    @pytest.mark.asyncio
    async def test_returns_most_recent_value(self, dispatcher, store, make_sample, today):
        store.add_samples(
            HEIGHT_TYPE,
            [
                make_sample(hours_ago=24 * 30, value=1.78),
                make_sample(hours_ago=24 * 3, value=1.80),
                make_sample(hours_ago=24 * 60, value=1.75),
            ],
        )

        result = await dispatcher.fetch(MetricId.HEIGHT, today)

        assert result.kind == SampleKind.POINT_SAMPLE
        assert result.value == 1.80
        assert result.unit_system == UnitSystem.METRIC
        assert result.unit == Unit.METER

    @pytest.mark.asyncio
    async def test_absent_when_no_samples(self, dispatcher, today):
        result = await dispatcher.fetch(MetricId.WEIGHT, today)

        assert result.value is None

    @pytest.mark.asyncio
    async def test_absent_when_latest_sample_has_no_value(
        self, dispatcher, store, make_sample, today
    ):
        store.add_sample(HEIGHT_TYPE, make_sample(hours_ago=24 * 3, value=1.80))
        store.add_sample(HEIGHT_TYPE, make_sample(hours_ago=1))

        result = await dispatcher.fetch(MetricId.HEIGHT, today)

        assert result.value is None

    @pytest.mark.asyncio
    async def test_query_shape(self, mock_store, today):
        await QueryDispatcher(mock_store).fetch(MetricId.HEIGHT, today)

        args, kwargs = mock_store.execute_sample_query.call_args
        provider_type, predicate = args
        assert provider_type.identifier == HEIGHT_TYPE
        assert predicate.start is None
        assert predicate.end == today.end
        assert kwargs == {"limit": 1, "sort_descending": True}

    @pytest.mark.asyncio
    async def test_samples_after_interval_end_are_ignored(
        self, dispatcher, store, make_sample, now
    ):
        store.add_sample(HEIGHT_TYPE, make_sample(hours_ago=30, value=1.70))
        store.add_sample(HEIGHT_TYPE, make_sample(hours_ago=2, value=1.80))
        yesterday = resolve(TimeRange.yesterday(), now=now)

        result = await dispatcher.fetch(MetricId.HEIGHT, yesterday)

        assert result.value == 1.70


class TestCumulativeStrategy:
    """Statistics queries."""

    @pytest.mark.asyncio
    async def test_sums_samples_in_interval(self, dispatcher, store, make_sample, today):
        store.add_samples(
            STEP_COUNT_TYPE,
            [
                make_sample(hours_ago=1, value=100),
                make_sample(hours_ago=2, value=250),
                make_sample(hours_ago=3, value=400),
                make_sample(hours_ago=20, value=9999),
            ],
        )

        result = await dispatcher.fetch(MetricId.STEPS, today)

        assert result.value == 750

    @pytest.mark.asyncio
    async def test_zero_when_no_samples(self, dispatcher, today):
        result = await dispatcher.fetch(MetricId.DISTANCE, today)

        assert result.value == 0
        assert result.kind == SampleKind.CUMULATIVE_SUM

    @pytest.mark.asyncio
    async def test_zero_when_store_reports_no_data(self, mock_store, today):
        mock_store.execute_statistics_query.side_effect = DataUnavailableError()

        result = await QueryDispatcher(mock_store).fetch(MetricId.STEPS, today)

        assert result.value == 0

    @pytest.mark.asyncio
    async def test_uses_strict_start_predicate(self, mock_store, today):
        await QueryDispatcher(mock_store).fetch(MetricId.ACTIVE_ENERGY, today)

        provider_type, predicate = mock_store.execute_statistics_query.call_args.args
        assert predicate.start == today.start
        assert predicate.end == today.end
        assert predicate.strict_start

    @pytest.mark.asyncio
    async def test_sleep_stage_sums_only_its_category(
        self, dispatcher, store, make_sample, today
    ):
        store.add_samples(
            SLEEP_ANALYSIS_TYPE,
            [
                make_sample(hours_ago=10, minutes=90, category=SleepStage.ASLEEP_DEEP),
                make_sample(hours_ago=8, minutes=30, category=SleepStage.ASLEEP_DEEP),
                make_sample(hours_ago=9, minutes=60, category=SleepStage.ASLEEP_REM),
                make_sample(hours_ago=11, minutes=480, category=SleepStage.IN_BED),
            ],
        )

        deep = await dispatcher.fetch(MetricId.SLEEP_DEEP, today)
        asleep = await dispatcher.fetch(MetricId.SLEEP_DURATION, today)
        in_bed = await dispatcher.fetch(MetricId.SLEEP_IN_BED, today)

        assert deep.value == pytest.approx(120)
        assert asleep.value == pytest.approx(180)
        assert in_bed.value == pytest.approx(480)


class TestEventStrategy:
    """Sample-list queries."""

    @pytest.mark.asyncio
    async def test_returns_samples_newest_first(self, dispatcher, store, make_sample, today):
        first = make_sample(hours_ago=5, value=30)
        second = make_sample(hours_ago=2, value=45)
        store.add_samples(WORKOUT_TYPE, [first, second])

        result = await dispatcher.fetch(MetricId.WORKOUT, today)

        assert result.samples == (second, first)
        assert result.value is None

    @pytest.mark.asyncio
    async def test_empty_when_no_samples(self, dispatcher, today):
        result = await dispatcher.fetch(MetricId.SLEEP_ANALYSIS, today)

        assert result.samples == ()

    @pytest.mark.asyncio
    async def test_unbounded_query(self, mock_store, today):
        await QueryDispatcher(mock_store).fetch(MetricId.SLEEP_ANALYSIS, today)

        assert mock_store.execute_sample_query.call_args.kwargs == {
            "limit": None,
            "sort_descending": True,
        }


class TestFailures:
    """Error normalization at the store boundary."""

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, mock_store, today):
        cause = RuntimeError("store unavailable")
        mock_store.execute_statistics_query.side_effect = cause

        with pytest.raises(QueryFailedError) as exc_info:
            await QueryDispatcher(mock_store).fetch(MetricId.STEPS, today)

        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause
        assert exc_info.value.details == {"cause": "RuntimeError", "metric": "steps"}

    @pytest.mark.asyncio
    async def test_not_authorized_passes_through(self, today):
        store = InMemoryHealthStore(enforce_authorization=True)

        with pytest.raises(NotAuthorizedError):
            await QueryDispatcher(store).fetch(MetricId.STEPS, today)

    @pytest.mark.asyncio
    async def test_unmapped_metric_fails_before_store_call(self, mock_store, today):
        catalog = MetricCatalog(
            {
                MetricId.STEPS: MetricDescriptor(
                    metric=MetricId.STEPS,
                    sample_kind=SampleKind.CUMULATIVE_SUM,
                    provider_type=None,
                    metric_unit=Unit.COUNT,
                    imperial_unit=Unit.COUNT,
                )
            }
        )

        with pytest.raises(InvalidMetricError):
            await QueryDispatcher(mock_store, catalog).fetch(MetricId.STEPS, today)

        mock_store.execute_statistics_query.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancellation_is_not_wrapped(self, today):
        store = InMemoryHealthStore(latency=10)
        task = asyncio.create_task(QueryDispatcher(store).fetch(MetricId.STEPS, today))
        await asyncio.sleep(0)

        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task


class TestQuerySamples:
    """Raw sample listing for any metric."""

    @pytest.mark.asyncio
    async def test_lists_quantity_samples(self, dispatcher, store, make_sample, today):
        store.add_samples(
            STEP_COUNT_TYPE,
            [make_sample(hours_ago=3, value=10), make_sample(hours_ago=1, value=20)],
        )

        samples = await dispatcher.query_samples(MetricId.STEPS, today)

        assert [s.raw_value for s in samples] == [20, 10]

    @pytest.mark.asyncio
    async def test_wraps_failures(self, mock_store, today):
        mock_store.execute_sample_query.side_effect = OSError("disk")

        with pytest.raises(QueryFailedError):
            await QueryDispatcher(mock_store).query_samples(MetricId.HEIGHT, today)
