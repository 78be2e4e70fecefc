import asyncio
import threading
import unittest

import pigpio

from edgecapture import CaptureState, EdgeCapture, EdgeEvent
from fakepi import FakePi

DATA_PIN = 13


class TestEdgeCapture(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.pi = FakePi(tick=1000)
        self.capture = EdgeCapture(self.pi, DATA_PIN)

    def test_configures_input(self):
        self.assertEqual(self.pi.modes[DATA_PIN], pigpio.INPUT)
        self.assertNotIn(DATA_PIN, self.pi.glitch)
        self.assertEqual(self.capture.state, CaptureState.IDLE)

    def test_glitch_filter(self):
        capture = EdgeCapture(self.pi, 5, glitch_us=10)
        self.assertEqual(self.pi.glitch[5], 10)
        capture.close()
        self.assertEqual(self.pi.glitch[5], 0)

    def test_records_relative_timestamps(self):
        self.capture.arm()
        self.assertEqual(self.capture.state, CaptureState.ARMED)
        self.assertEqual(self.pi.callbacks[0].edge, pigpio.FALLING_EDGE)
        self.pi.emit(DATA_PIN, [1100, 1250])
        self.assertEqual(self.capture.drain(), [EdgeEvent(100), EdgeEvent(250)])

    def test_tick_wraparound(self):
        self.pi.tick = 0xffffff00
        self.capture.arm()
        self.pi.emit(DATA_PIN, [0xffffff10, 0x10])
        self.assertEqual(self.capture.drain(), [EdgeEvent(0x10), EdgeEvent(0x110)])

    def test_nothing_recorded_after_stop(self):
        self.capture.arm()
        self.pi.emit(DATA_PIN, [1010])
        callback = self.pi.callbacks[0]
        self.capture.stop()
        self.assertTrue(callback.cancelled)
        self.assertFalse(self.capture.armed)
        # a notification already in flight when stop() ran
        callback.func(DATA_PIN, 0, 1020)
        self.assertEqual(len(self.capture), 1)
        self.assertEqual(self.capture.state, CaptureState.IDLE)

    def test_capacity_drops_excess(self):
        capture = EdgeCapture(self.pi, 6, capacity=3)
        capture.arm()
        self.pi.emit(6, [1001, 1002, 1003, 1004, 1005])
        self.assertEqual([e.tick_us for e in capture.drain()], [1, 2, 3])
        self.assertEqual(capture.dropped, 2)

    def test_drain_does_not_clear(self):
        self.capture.arm()
        self.pi.emit(DATA_PIN, [1001, 1002])
        self.assertEqual(self.capture.drain(), self.capture.drain())
        self.assertEqual(len(self.capture), 2)

    def test_arm_starts_a_fresh_session(self):
        self.capture.arm()
        self.pi.emit(DATA_PIN, [1001, 1002])
        self.capture.arm()
        self.assertEqual(len(self.pi.callbacks), 1)
        self.assertEqual(self.capture.drain(), [])

    async def test_wait_already_satisfied(self):
        self.capture.arm()
        self.pi.emit(DATA_PIN, [1001, 1002, 1003])
        self.assertTrue(await self.capture.wait_for_count(3, 0.1))
        self.assertEqual(self.capture.state, CaptureState.COMPLETED)

    async def test_wait_times_out(self):
        self.capture.arm()
        self.pi.emit(DATA_PIN, [1001])
        self.assertFalse(await self.capture.wait_for_count(3, 0.02))
        self.assertEqual(self.capture.state, CaptureState.TIMED_OUT)
        self.assertEqual(len(self.capture), 1)

    async def test_wait_wakes_on_later_edges(self):
        self.capture.arm()
        asyncio.get_running_loop().call_later(0.01, self.pi.emit, DATA_PIN, [1001, 1002])
        self.assertTrue(await self.capture.wait_for_count(2, 1))

    async def test_edges_from_notification_thread(self):
        self.capture.arm()
        timer = threading.Timer(0.01, self.pi.emit, (DATA_PIN, range(1001, 1044)))
        timer.start()
        try:
            self.assertTrue(await self.capture.wait_for_count(43, 2))
        finally:
            timer.join()
        self.assertEqual(len(self.capture), 43)

    async def test_edges_keep_arriving_after_wait(self):
        self.capture.arm()
        self.pi.emit(DATA_PIN, [1001, 1002])
        self.assertTrue(await self.capture.wait_for_count(2, 0.1))
        self.pi.emit(DATA_PIN, [1003])
        self.assertEqual(len(self.capture), 3)

    async def test_cancelled_wait_leaves_capture_reusable(self):
        self.capture.arm()
        task = asyncio.create_task(self.capture.wait_for_count(5, 10))
        await asyncio.sleep(0.01)
        task.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await task
        self.capture.stop()

        self.capture.arm()
        self.pi.emit(DATA_PIN, [1001, 1002])
        self.assertTrue(await self.capture.wait_for_count(2, 1))


if __name__ == "__main__":
    unittest.main()
