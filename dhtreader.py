#This module drives a DHT11 sensor: wake pulse on the output pin, falling edges
#captured on the input pin, decoded into temperature and humidity.
import asyncio
import enum
import logging
import time
from dataclasses import dataclass

import pigpio

from bittimings import DHT11, BitTimeError, ChecksumError, decode_frame
from edgecapture import EdgeCapture
from measurements import Measurement
from repeatingtask import repeat

logger = logging.getLogger(__name__)

DEFAULT_READ_INTERVAL_MS = 2000


class ErrorType(enum.Enum):
    TIMEOUT = "timeout"
    BIT_COUNT = "bit count"
    BIT_TIME = "bit time"
    CHECKSUM = "checksum"


@dataclass(frozen=True)
class Success:
    measurement: Measurement


@dataclass(frozen=True)
class Failure:
    error: ErrorType
    edges: int


class DhtReader:
    def __init__(self, pi, input_gpio, output_gpio, read_interval=DEFAULT_READ_INTERVAL_MS,
                 on_measurement=None, on_error=None, timings=DHT11, glitch_us=0, capture=None):
        self.pi = pi
        self.input_gpio = input_gpio
        self.output_gpio = output_gpio
        self.read_interval = read_interval / 1000
        self.timings = timings
        self.on_measurement = on_measurement
        self.on_error = on_error

        # setup errors (pigpio.error) propagate, the reader never starts half configured
        self.pi.set_mode(output_gpio, pigpio.OUTPUT)
        self.pi.write(output_gpio, 0)
        if capture is None:
            capture = EdgeCapture(pi, input_gpio, pigpio.FALLING_EDGE, glitch_us=glitch_us)
        self.capture = capture

        self._task = None
        self._stop_event = None

    @property
    def task(self):
        """The periodic read task, None when stopped."""
        return self._task

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    def _wake(self):
        # busy wait, a cooperative sleep jitters the pulse out of the accepted window
        self.pi.write(self.output_gpio, 1)
        start = time.perf_counter()
        while (time.perf_counter() - start) * 1000 < self.timings.wake_ms:
            pass
        self.pi.write(self.output_gpio, 0)

    def _fail(self, error, edges):
        logger.debug("read failed: %s, %d edges", error.value, edges)
        if self.on_error is not None:
            self.on_error(error, edges)
        return Failure(error, edges)

    async def read(self):
        """Run one exchange with the sensor and return Success or Failure."""
        total = self.timings.total_edges
        self.capture.arm()
        try:
            self._wake()
            completed = await self.capture.wait_for_count(total, self.read_interval)
        except asyncio.CancelledError:
            # the attempt is withdrawn, not failed: neither callback fires
            logger.debug("read cancelled with %d edges captured", len(self.capture.drain()))
            raise
        finally:
            self.capture.stop()

        edges = [event.tick_us for event in self.capture.drain()]
        if not completed:
            return self._fail(ErrorType.TIMEOUT, len(edges))
        if len(edges) != total:
            return self._fail(ErrorType.BIT_COUNT, len(edges))

        try:
            frame = decode_frame(edges, self.timings)
        except BitTimeError as e:
            logger.debug("%s", e)
            return self._fail(ErrorType.BIT_TIME, len(edges))
        except ChecksumError as e:
            logger.debug("%s", e)
            return self._fail(ErrorType.CHECKSUM, len(edges))

        measurement = Measurement.from_frame(frame)
        if self.on_measurement is not None:
            self.on_measurement(measurement.temperature, measurement.humidity)
        return Success(measurement)

    async def start(self, read_interval=None):
        await self.stop()
        if read_interval is not None:
            self.read_interval = read_interval / 1000
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(repeat(self.read, self.read_interval, self._stop_event))
        logger.info("reading GPIO %d every %.1f s", self.input_gpio, self.read_interval)

    async def stop(self):
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
            self._stop_event = None

    def close(self):
        self.capture.close()
        self.pi.write(self.output_gpio, 0)
