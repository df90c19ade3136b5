import asyncio
import logging
import math
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from numbers import Real
from typing import Any, Dict, Optional, Set

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class InvalidArgument(ValueError):
    """Raised by report() when a required field is missing or malformed."""


@dataclass(frozen=True)
class VehiclePosition:
    vehicle_id: str
    latitude: float
    longitude: float
    reporter_id: str
    observed_at: datetime

    def as_event(self) -> Dict[str, Any]:
        return {
            "vehicleId": self.vehicle_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "reporterId": self.reporter_id,
            "observedAt": self.observed_at.isoformat(),
        }


class Subscription:
    """Bounded buffer of position updates for one observer.

    Events that arrive while the buffer is full are dropped and counted in
    ``dropped``. Once closed, late events are discarded.
    """

    def __init__(self, maxsize: int, loop: Optional[asyncio.AbstractEventLoop]):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._loop = loop
        self.dropped = 0
        self.closed = False

    def _offer(self, position: VehiclePosition):
        if self.closed:
            return
        try:
            self._queue.put_nowait(position)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                "Observer buffer full, dropped update for %s (%d dropped so far)",
                position.vehicle_id,
                self.dropped,
            )

    def _deliver(self, position: VehiclePosition) -> bool:
        """Hand the update to this observer; False if its event loop is gone."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if self._loop is None or self._loop is running:
            self._offer(position)
            return True
        try:
            self._loop.call_soon_threadsafe(self._offer, position)
        except RuntimeError:
            # loop closed
            self.dropped += 1
            return False
        return True

    async def get(self) -> VehiclePosition:
        return await self._queue.get()

    def get_nowait(self) -> VehiclePosition:
        return self._queue.get_nowait()

    def pending(self) -> int:
        return self._queue.qsize()


class LiveLocationRegistry:
    """Latest known position per vehicle, with fan-out to observers.

    One instance lives for the lifetime of the process. A single lock guards
    both the table and the observer set, so a report is applied and enqueued
    for every observer as one step; readers only ever get copies of the table
    and the entries themselves are immutable.
    """

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._positions: Dict[str, VehiclePosition] = {}
        self._subscribers: Set[Subscription] = set()
        self._last_observed: Optional[datetime] = None

    def report(self, vehicle_id: str, latitude: float, longitude: float, reporter_id: str) -> VehiclePosition:
        if not isinstance(vehicle_id, str) or not vehicle_id.strip():
            raise InvalidArgument("vehicle_id must be a non-empty string")
        for name, value in (("latitude", latitude), ("longitude", longitude)):
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvalidArgument(f"{name} must be a number")
            if not math.isfinite(value):
                raise InvalidArgument(f"{name} must be finite")
        if reporter_id is None or not str(reporter_id).strip():
            raise InvalidArgument("reporter_id is required")

        with self._lock:
            position = VehiclePosition(
                vehicle_id=vehicle_id,
                latitude=float(latitude),
                longitude=float(longitude),
                reporter_id=str(reporter_id),
                observed_at=self._now(),
            )
            self._positions[vehicle_id] = position
            dead = [s for s in self._subscribers if not s._deliver(position)]
            for subscription in dead:
                self._subscribers.discard(subscription)
                subscription.closed = True
                logger.warning("Dropped observer whose event loop has closed")
        return position

    def snapshot(self) -> Dict[str, VehiclePosition]:
        with self._lock:
            return dict(self._positions)

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        subscription = Subscription(maxsize or self._queue_size, loop)
        with self._lock:
            self._subscribers.add(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription):
        if not isinstance(subscription, Subscription):
            return
        with self._lock:
            self._subscribers.discard(subscription)
            subscription.closed = True

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _now(self) -> datetime:
        # observed_at strictly increases even if the clock does not advance
        now = datetime.now(timezone.utc)
        if self._last_observed is not None and now <= self._last_observed:
            now = self._last_observed + timedelta(microseconds=1)
        self._last_observed = now
        return now
