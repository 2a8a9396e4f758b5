"""Fairness queue limiting how many requesters run the pipeline at once.

Requesters move Idle -> Queued -> Processing -> Idle.  A first contact goes
straight to Processing while fewer than ``max_concurrent`` requesters are
processing and nobody is queued; otherwise it joins the tail of the queue.
On release the head of the queue is promoted after a short debounce.

Admission is advisory: it orders work and drives the "you are #N" feedback.
It does not protect any shared state of the pipeline.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable

import structlog

from hellarr.domain.entities.media import Admission

log = structlog.get_logger(__name__)


@dataclass
class QueuedRequester:
    """Bookkeeping for one requester known to the queue."""

    requester_id: str
    is_processing: bool
    last_activity_at: float
    started_at: float | None = None


class FairnessQueue:
    """Admission control with position/ETA feedback.

    Args:
        max_concurrent: Requesters allowed to process at the same time.
        promote_delay: Debounce (seconds) before promoting after a release.
        idle_timeout: Requesters without activity for this long are purged.
        default_duration: Seed (seconds) for the processing-time average.
        smoothing: EWMA weight of the newest processing duration.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        *,
        max_concurrent: int = 1,
        promote_delay: float = 0.5,
        idle_timeout: float = 300.0,
        default_duration: float = 10.0,
        smoothing: float = 0.3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._max_concurrent = max_concurrent
        self._promote_delay = promote_delay
        self._idle_timeout = idle_timeout
        self._avg_duration = default_duration
        self._smoothing = smoothing
        self._clock = clock
        self._processing: dict[str, QueuedRequester] = {}
        self._queued: OrderedDict[str, QueuedRequester] = OrderedDict()
        self._turn_events: dict[str, asyncio.Event] = {}
        self._promotion: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def processing_count(self) -> int:
        return len(self._processing)

    @property
    def queued_count(self) -> int:
        return len(self._queued)

    @property
    def average_duration(self) -> float:
        return self._avg_duration

    def position(self, requester_id: str) -> int:
        """1-based queue position, 0 when processing or unknown."""
        for index, rid in enumerate(self._queued, start=1):
            if rid == requester_id:
                return index
        return 0

    def eta_seconds(self, position: int) -> float:
        """Estimated wait for a given queue position."""
        if position <= 0:
            return 0.0
        rounds = math.ceil(position / self._max_concurrent)
        return round(rounds * self._avg_duration, 1)

    def snapshot(self) -> dict[str, Any]:
        return {
            "processing": list(self._processing),
            "queued": list(self._queued),
            "max_concurrent": self._max_concurrent,
            "average_duration": round(self._avg_duration, 2),
        }

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    async def admit(self, requester_id: str) -> Admission:
        """Admit or queue *requester_id*; repeated calls keep the position."""
        now = self._clock()
        self.purge_idle(now)

        current = self._processing.get(requester_id)
        if current is not None:
            current.last_activity_at = now
            return Admission(admitted=True)

        queued = self._queued.get(requester_id)
        if queued is not None:
            queued.last_activity_at = now
            pos = self.position(requester_id)
            return Admission(
                admitted=False, queue_position=pos, eta_seconds=self.eta_seconds(pos)
            )

        if len(self._processing) < self._max_concurrent and not self._queued:
            self._start(requester_id, now)
            log.debug("fairness_admitted", requester=requester_id)
            return Admission(admitted=True)

        self._queued[requester_id] = QueuedRequester(
            requester_id=requester_id,
            is_processing=False,
            last_activity_at=now,
        )
        pos = len(self._queued)
        log.info(
            "fairness_queued",
            requester=requester_id,
            position=pos,
            processing=len(self._processing),
        )
        return Admission(
            admitted=False, queue_position=pos, eta_seconds=self.eta_seconds(pos)
        )

    async def release(self, requester_id: str) -> None:
        """Finish processing (or abandon the queue) and promote the next."""
        now = self._clock()
        finished = self._processing.pop(requester_id, None)
        if finished is not None and finished.started_at is not None:
            self._record_duration(now - finished.started_at)
        self._queued.pop(requester_id, None)
        self._turn_events.pop(requester_id, None)

        self.purge_idle(now)
        self._schedule_promotion()

    async def wait_for_turn(self, requester_id: str, timeout: float) -> Admission:
        """Admit and, if queued, wait up to *timeout* seconds for a slot.

        On timeout the requester leaves the queue and the returned
        admission carries the position it had.
        """
        admission = await self.admit(requester_id)
        if admission.admitted:
            return admission

        event = self._turn_events.setdefault(requester_id, asyncio.Event())
        try:
            await asyncio.wait_for(event.wait(), timeout=timeout)
        except TimeoutError:
            current = await self.admit(requester_id)
            if not current.admitted:
                self._queued.pop(requester_id, None)
                self._turn_events.pop(requester_id, None)
                log.info(
                    "fairness_wait_timeout",
                    requester=requester_id,
                    position=current.queue_position,
                )
            return current
        return Admission(admitted=True)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def purge_idle(self, now: float | None = None) -> int:
        """Drop requesters idle longer than the timeout. Returns count."""
        if now is None:
            now = self._clock()
        cutoff = now - self._idle_timeout
        stale = [
            rid
            for table in (self._processing, self._queued)
            for rid, req in table.items()
            if req.last_activity_at < cutoff
        ]
        for rid in stale:
            self._processing.pop(rid, None)
            self._queued.pop(rid, None)
            self._turn_events.pop(rid, None)
        if stale:
            log.info("fairness_purged_idle", count=len(stale))
            self._schedule_promotion()
        return len(stale)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _start(self, requester_id: str, now: float) -> None:
        self._processing[requester_id] = QueuedRequester(
            requester_id=requester_id,
            is_processing=True,
            last_activity_at=now,
            started_at=now,
        )

    def _record_duration(self, duration: float) -> None:
        duration = max(0.0, duration)
        self._avg_duration = (
            self._smoothing * duration + (1.0 - self._smoothing) * self._avg_duration
        )

    def _schedule_promotion(self) -> None:
        if not self._queued or len(self._processing) >= self._max_concurrent:
            return
        if self._promote_delay <= 0:
            self._promote()
            return
        if self._promotion is not None and not self._promotion.cancelled():
            self._promotion.cancel()
        loop = asyncio.get_running_loop()
        self._promotion = loop.call_later(self._promote_delay, self._promote)

    def _promote(self) -> None:
        self._promotion = None
        now = self._clock()
        while self._queued and len(self._processing) < self._max_concurrent:
            requester_id, _ = self._queued.popitem(last=False)
            self._start(requester_id, now)
            event = self._turn_events.pop(requester_id, None)
            if event is not None:
                event.set()
            log.info(
                "fairness_promoted",
                requester=requester_id,
                remaining=len(self._queued),
            )
