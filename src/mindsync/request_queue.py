"""Serializing, caching, retrying queue for coach backend calls.

One queue instance owns one processing loop. Requests run strictly one at a
time, at least ``min_gap`` seconds apart. A failing head is retried with
exponential backoff before anything behind it runs.
"""

import asyncio
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)

MIN_GAP_SECONDS = 2.0
MAX_RETRIES = 3
CACHE_TTL_SECONDS = 300.0

Work = Callable[[], Awaitable[Any]]


class RequestFailedError(RuntimeError):
    """Raised to the caller once a request has exhausted its retries."""

    pass


@dataclass
class QueuedRequest:
    id: int
    work: Work
    future: asyncio.Future
    cache_key: str | None = None
    retries: int = 0


@dataclass
class CacheEntry:
    response: Any
    timestamp: float


@dataclass
class RequestQueue:
    """
    FIFO request queue with a response cache.

    ``clock`` and ``sleep`` are injectable so tests can run on virtual time.
    """

    min_gap: float = MIN_GAP_SECONDS
    max_retries: int = MAX_RETRIES
    cache_ttl: float = CACHE_TTL_SECONDS
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    _pending: deque = field(default_factory=deque, init=False, repr=False)
    _cache: dict = field(default_factory=dict, init=False, repr=False)
    _ids: Any = field(default_factory=itertools.count, init=False, repr=False)
    _processing: bool = field(default=False, init=False)
    _last_dispatch: float | None = field(default=None, init=False)
    _runner: asyncio.Task | None = field(default=None, init=False, repr=False)

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_busy(self) -> bool:
        return self._processing

    def clear_cache(self) -> None:
        self._cache.clear()

    def _cached(self, cache_key: str | None) -> CacheEntry | None:
        if cache_key is None:
            return None
        entry = self._cache.get(cache_key)
        if entry is None:
            return None
        if self.clock() - entry.timestamp >= self.cache_ttl:
            del self._cache[cache_key]
            return None
        return entry

    async def enqueue(self, work: Work, cache_key: str | None = None) -> Any:
        """
        Run ``work`` through the queue and return its result.

        A fresh cache hit returns immediately without queueing.

        Raises:
            RequestFailedError: After ``max_retries`` failed attempts.
        """
        entry = self._cached(cache_key)
        if entry is not None:
            logger.info(f"Cache hit for {cache_key}")
            return entry.response

        future = asyncio.get_running_loop().create_future()
        request = QueuedRequest(id=next(self._ids), work=work, future=future, cache_key=cache_key)
        self._pending.append(request)
        logger.debug(f"Queued request {request.id} ({len(self._pending)} pending)")

        if not self._processing:
            self._processing = True
            self._runner = asyncio.create_task(self._process())

        return await future

    async def _wait_for_gap(self) -> None:
        if self._last_dispatch is None:
            return
        remaining = self.min_gap - (self.clock() - self._last_dispatch)
        if remaining > 0:
            await self.sleep(remaining)

    async def _dispatch(self, request: QueuedRequest) -> bool:
        """Run one attempt of ``request``; True once it has reached a terminal state."""
        await self._wait_for_gap()

        self._last_dispatch = self.clock()
        logger.info(f"Dispatching request {request.id} (attempt {request.retries + 1})")
        try:
            result = await request.work()
        except Exception as e:
            request.retries += 1
            if request.retries < self.max_retries:
                backoff = 2 ** request.retries
                logger.warning(f"Request {request.id} failed ({e}); retrying in {backoff}s")
                await self.sleep(backoff)
                return False

            logger.error(f"Request {request.id} failed after {request.retries} attempts: {e}")
            error = RequestFailedError(f"Request failed after {request.retries} attempts: {e}")
            error.__cause__ = e
            if not request.future.done():
                request.future.set_exception(error)
            return True

        if request.cache_key is not None:
            self._cache[request.cache_key] = CacheEntry(response=result, timestamp=self.clock())
        if not request.future.done():
            request.future.set_result(result)
        return True

    async def _process(self) -> None:
        try:
            while self._pending:
                request = self._pending[0]
                finished = True
                try:
                    if request.future.done():
                        logger.debug(f"Dropping request {request.id}: caller is gone")
                        continue
                    finished = await self._dispatch(request)
                finally:
                    if finished:
                        self._pending.popleft()
        finally:
            self._processing = False
