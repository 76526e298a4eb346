"""Adapts callback-style health store clients to awaitable calls."""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional, Protocol, runtime_checkable

import structlog

from .base import HealthStore, ProviderType, Sample, SamplePredicate

logger = structlog.get_logger(__name__)

# completion(result, error) - exactly one of the two is meaningful
CompletionHandler = Callable[[Any, Optional[BaseException]], None]


async def await_callback(
    start: Callable[[CompletionHandler], Any],
    cancel: Optional[Callable[[], Any]] = None,
) -> Any:
    """Run a callback-based operation and await its completion.

    ``start`` receives a completion handler and must arrange for it to be
    called once, from any thread, with ``(result, None)`` or
    ``(None, error)``. If the awaiting task is cancelled, ``cancel`` is
    invoked so the provider can abandon the request; a completion arriving
    afterwards is dropped.

    Args:
        start: Starts the operation given the completion handler.
        cancel: Optional hook that stops the in-flight operation.

    Returns:
        The result passed to the completion handler.

    Raises:
        The error passed to the completion handler.
    """
    loop = asyncio.get_running_loop()
    future: asyncio.Future = loop.create_future()

    def _resolve(result: Any, error: Optional[BaseException]) -> None:
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)

    def _complete(result: Any = None, error: Optional[BaseException] = None) -> None:
        if loop.is_closed():
            return
        loop.call_soon_threadsafe(_resolve, result, error)

    start(_complete)
    try:
        return await future
    except asyncio.CancelledError:
        if cancel is not None:
            cancel()
        logger.debug("callback_operation_cancelled")
        raise


@dataclass(frozen=True)
class StoreRequest:
    """A query handed to a callback-style client."""

    kind: str  # "samples" or "statistics"
    provider_type: ProviderType
    predicate: Optional[SamplePredicate] = None
    limit: Optional[int] = None
    sort_descending: bool = True


@runtime_checkable
class CallbackHealthClient(Protocol):
    """Callback-style provider API.

    Examples: bindings to an on-device store that report results through
    completion handlers instead of coroutines.
    """

    def authorize(self, types_to_read: set[ProviderType], completion: CompletionHandler) -> None:
        """Request read access; complete with a bool."""
        ...

    def execute(self, request: StoreRequest, completion: CompletionHandler) -> None:
        """Run a request; complete with a list of samples or a sum."""
        ...

    def stop(self, request: StoreRequest) -> None:
        """Abandon an in-flight request."""
        ...


class CallbackHealthStore(HealthStore):
    """HealthStore over a callback-style client.

    Every request goes through ``await_callback``, so cancellation of the
    awaiting task stops the provider request.
    """

    name = "callback"

    def __init__(self, client: CallbackHealthClient):
        self._client = client
        self._logger = logger.bind(store=self.name)

    async def _run(self, request: StoreRequest) -> Any:
        self._logger.debug(
            "store_request_started",
            kind=request.kind,
            provider_type=request.provider_type.identifier,
        )
        return await await_callback(
            lambda done: self._client.execute(request, done),
            cancel=lambda: self._client.stop(request),
        )

    async def request_authorization(self, types_to_read: set[ProviderType]) -> bool:
        granted = await await_callback(
            lambda done: self._client.authorize(set(types_to_read), done)
        )
        return bool(granted)

    async def execute_sample_query(
        self,
        provider_type: ProviderType,
        predicate: Optional[SamplePredicate],
        limit: Optional[int] = None,
        sort_descending: bool = True,
    ) -> list[Sample]:
        request = StoreRequest(
            kind="samples",
            provider_type=provider_type,
            predicate=predicate,
            limit=limit,
            sort_descending=sort_descending,
        )
        samples = await self._run(request)
        return list(samples or [])

    async def execute_statistics_query(
        self, provider_type: ProviderType, predicate: SamplePredicate
    ) -> Optional[float]:
        request = StoreRequest(kind="statistics", provider_type=provider_type, predicate=predicate)
        total = await self._run(request)
        return None if total is None else float(total)
