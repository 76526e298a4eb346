"""In-memory health store."""

import asyncio
from collections import defaultdict
from collections.abc import Iterable
from typing import Optional

import structlog

from vitals.core.exceptions import NotAuthorizedError

from .base import HealthStore, ProviderType, Sample, SamplePredicate

logger = structlog.get_logger(__name__)


class InMemoryHealthStore(HealthStore):
    """HealthStore keeping samples in memory.

    Suitable for testing and for feeding data parsed from exports. Samples
    are stored per provider type identifier; category filters of a
    ``ProviderType`` select matching samples. Sums use a sample's value,
    or its duration in minutes when it carries no value (category samples
    such as sleep stages).

    Args:
        grant_authorization: Answer given to authorization requests.
        enforce_authorization: Refuse queries for types never authorized.
        latency: Seconds each query waits before answering.
    """

    name = "in_memory"

    def __init__(
        self,
        grant_authorization: bool = True,
        enforce_authorization: bool = False,
        latency: float = 0.0,
    ):
        self._samples: dict[str, list[Sample]] = defaultdict(list)
        self._authorized: set[ProviderType] = set()
        self._grant_authorization = grant_authorization
        self._enforce_authorization = enforce_authorization
        self._latency = latency
        self._failure: Optional[BaseException] = None
        self.query_count = 0
        self._logger = logger.bind(store=self.name)

    def add_sample(self, identifier: str, sample: Sample) -> None:
        """Record a sample under a provider type identifier."""
        self._samples[identifier].append(sample)

    def add_samples(self, identifier: str, samples: Iterable[Sample]) -> None:
        for sample in samples:
            self.add_sample(identifier, sample)

    def fail_with(self, error: Optional[BaseException]) -> None:
        """Make every following query raise ``error`` (None to stop)."""
        self._failure = error

    @property
    def authorized_types(self) -> set[ProviderType]:
        return set(self._authorized)

    async def request_authorization(self, types_to_read: set[ProviderType]) -> bool:
        if self._failure is not None:
            raise self._failure
        if self._grant_authorization:
            self._authorized.update(types_to_read)
        self._logger.info(
            "authorization_requested",
            types=sorted(t.identifier for t in types_to_read),
            granted=self._grant_authorization,
        )
        return self._grant_authorization

    async def execute_sample_query(
        self,
        provider_type: ProviderType,
        predicate: Optional[SamplePredicate],
        limit: Optional[int] = None,
        sort_descending: bool = True,
    ) -> list[Sample]:
        matches = await self._query(provider_type, predicate)
        matches.sort(key=lambda s: s.start_time, reverse=sort_descending)
        if limit is not None:
            matches = matches[:limit]
        return matches

    async def execute_statistics_query(
        self, provider_type: ProviderType, predicate: SamplePredicate
    ) -> Optional[float]:
        matches = await self._query(provider_type, predicate)
        if not matches:
            return None
        return sum(
            s.raw_value if s.raw_value is not None else s.duration_minutes for s in matches
        )

    async def _query(
        self, provider_type: ProviderType, predicate: Optional[SamplePredicate]
    ) -> list[Sample]:
        self.query_count += 1
        if self._latency:
            await asyncio.sleep(self._latency)
        if self._failure is not None:
            raise self._failure
        if self._enforce_authorization and provider_type not in self._authorized:
            raise NotAuthorizedError(f"Read access not granted for {provider_type.identifier}")
        return [
            s
            for s in self._samples.get(provider_type.identifier, [])
            if provider_type.matches(s.category) and (predicate is None or predicate.matches(s))
        ]
