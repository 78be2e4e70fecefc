# Records falling (or rising) edge timestamps on one input pin while armed.
# pigpio delivers edges on its own notification thread, the waiting side
# runs on the asyncio loop.
import asyncio
import enum
import logging
import threading
from typing import NamedTuple

import pigpio

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 64


class EdgeEvent(NamedTuple):
    tick_us: int  # microseconds since arm()


class CaptureState(enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    COMPLETED = "completed"
    TIMED_OUT = "timed out"


class EdgeCapture:
    def __init__(self, pi, gpio, edge=pigpio.FALLING_EDGE, capacity=DEFAULT_CAPACITY, glitch_us=0):
        self.pi = pi
        self.gpio = gpio
        self.edge = edge
        self.capacity = capacity
        self.state = CaptureState.IDLE
        self.dropped = 0

        self._lock = threading.Lock()
        self._events = []
        self._start_tick = 0
        self._callback = None
        self._waiter = None
        self._recording = False

        self.pi.set_mode(gpio, pigpio.INPUT)
        if glitch_us:
            self.pi.set_glitch_filter(gpio, glitch_us)

    @property
    def armed(self):
        return self._callback is not None

    def __len__(self):
        with self._lock:
            return len(self._events)

    def arm(self):
        if self.armed:
            self.stop()
        with self._lock:
            self._events = []
            self.dropped = 0
            self._waiter = None
            self._start_tick = self.pi.get_current_tick()
            self._recording = True
            self.state = CaptureState.ARMED
        self._callback = self.pi.callback(self.gpio, self.edge, self._on_edge)
        logger.debug("capture armed on GPIO %d", self.gpio)

    def _on_edge(self, gpio, level, tick):
        with self._lock:
            if not self._recording:
                return
            if len(self._events) >= self.capacity:
                self.dropped += 1
                return
            self._events.append(EdgeEvent(pigpio.tickDiff(self._start_tick, tick)))
            if self._waiter is not None and len(self._events) >= self._waiter[0]:
                _, loop, ready = self._waiter
                self._waiter = None
                loop.call_soon_threadsafe(ready.set)

    async def wait_for_count(self, count, timeout):
        """Wait until `count` edges are recorded.

        Returns True when they arrived and False on timeout. Events are not
        consumed. A cancelled wait leaves the capture armed so that stop()
        and a later arm() still work.
        """
        ready = asyncio.Event()
        with self._lock:
            if len(self._events) >= count:
                self.state = CaptureState.COMPLETED
                return True
            self._waiter = (count, asyncio.get_running_loop(), ready)
        try:
            await asyncio.wait_for(ready.wait(), timeout)
        except asyncio.TimeoutError:
            with self._lock:
                self.state = CaptureState.TIMED_OUT
            return False
        finally:
            with self._lock:
                self._waiter = None
        with self._lock:
            self.state = CaptureState.COMPLETED
        return True

    def drain(self):
        with self._lock:
            return list(self._events)

    def stop(self):
        if self._callback is not None:
            self._callback.cancel()
            self._callback = None
        with self._lock:
            self._recording = False
            self._waiter = None
            if self.state is CaptureState.ARMED:
                self.state = CaptureState.IDLE
        if self.dropped:
            logger.debug("capture on GPIO %d dropped %d edges over capacity", self.gpio, self.dropped)

    def close(self):
        self.stop()
        self.pi.set_glitch_filter(self.gpio, 0)
