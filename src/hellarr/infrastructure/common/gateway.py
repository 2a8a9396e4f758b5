"""Global FIFO request gateway with spacing and 429 backoff.

Every outbound provider call goes through a single drain loop.  Calls are
dispatched one at a time, strictly in submission order, with at least
``min_interval`` seconds between two dispatches.  A throttled call (HTTP 429)
is put back at the head of the queue with a not-before time of
``backoff_base * 2**attempt`` and retried up to ``max_retries`` times.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Awaitable, Callable

import httpx
import structlog

log = structlog.get_logger(__name__)

Send = Callable[[], Awaitable[httpx.Response]]

THROTTLED_STATUS = 429


@dataclass
class _PendingCall:
    send: Send
    future: asyncio.Future[httpx.Response]
    attempt: int = 0
    not_before: float = 0.0


class RequestGateway:
    """Serializes outbound HTTP calls behind one FIFO queue.

    Args:
        min_interval: Minimum seconds between two dispatches.
        max_retries: Retries on HTTP 429 before giving up.
        backoff_base: Base delay (seconds) for exponential backoff.
        clock: Monotonic clock, injectable for tests.
        sleep: Async sleep, injectable for tests.
    """

    def __init__(
        self,
        *,
        min_interval: float = 1.0,
        max_retries: int = 3,
        backoff_base: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._min_interval = min_interval
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._clock = clock
        self._sleep = sleep
        self._pending: deque[_PendingCall] = deque()
        self._drain_task: asyncio.Task[None] | None = None
        self._last_dispatch: float | None = None

    @property
    def pending(self) -> int:
        """Number of calls waiting for dispatch."""
        return len(self._pending)

    @property
    def last_dispatch(self) -> float | None:
        """Clock reading of the most recent dispatch."""
        return self._last_dispatch

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``."""
        return self._backoff_base * (2**attempt)

    async def enqueue(self, send: Send) -> httpx.Response:
        """Queue *send* and wait for its response.

        Network errors raised by *send* propagate unchanged and are not
        retried.  After the last retry the final 429 response is returned.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[httpx.Response] = loop.create_future()
        self._pending.append(_PendingCall(send=send, future=future))
        self._ensure_draining()
        return await future

    def _ensure_draining(self) -> None:
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        call: _PendingCall | None = None
        try:
            while self._pending:
                call = self._pending.popleft()
                if call.future.done():
                    # Caller gave up (cancelled) while waiting.
                    continue

                await self._wait_for_slot(call)
                self._last_dispatch = self._clock()

                try:
                    await self._dispatch(call)
                except Exception as exc:  # noqa: BLE001
                    if not call.future.done():
                        call.future.set_exception(exc)
                call = None
        finally:
            self._fail_unresolved(call)

    async def _dispatch(self, call: _PendingCall) -> None:
        response = await call.send()

        if (
            response.status_code == THROTTLED_STATUS
            and call.attempt < self._max_retries
        ):
            try:
                await response.aread()
            finally:
                await response.aclose()
            delay = self.backoff_delay(call.attempt)
            log.info(
                "gateway_retry",
                attempt=call.attempt + 1,
                delay=delay,
            )
            call.attempt += 1
            call.not_before = self._clock() + delay
            self._pending.appendleft(call)
            return

        if response.status_code == THROTTLED_STATUS:
            log.warning("gateway_retries_exhausted", attempts=call.attempt + 1)

        if call.future.done():
            # Nobody is waiting for this response any more.
            await response.aclose()
            log.debug("gateway_response_discarded", status=response.status_code)
            return
        call.future.set_result(response)

    def _fail_unresolved(self, current: _PendingCall | None) -> None:
        """Fail the in-flight call and the queue when the drain loop stops early."""
        stranded = [current] if current is not None else []
        stranded.extend(self._pending)
        self._pending.clear()
        failed = 0
        for call in stranded:
            if not call.future.done():
                call.future.set_exception(RuntimeError("request gateway stopped"))
                failed += 1
        if failed:
            log.warning("gateway_drain_stopped", failed=failed)

    async def _wait_for_slot(self, call: _PendingCall) -> None:
        now = self._clock()
        ready_at = call.not_before
        if self._last_dispatch is not None:
            ready_at = max(ready_at, self._last_dispatch + self._min_interval)
        wait = ready_at - now
        if wait > 0:
            await self._sleep(wait)

    async def aclose(self) -> None:
        """Stop the drain loop and cancel every pending call."""
        while self._pending:
            call = self._pending.popleft()
            if not call.future.done():
                call.future.cancel()
        if self._drain_task is not None and not self._drain_task.done():
            self._drain_task.cancel()
            try:
                await self._drain_task
            except asyncio.CancelledError:
                pass
        self._drain_task = None
