import asyncio
import os
import sys
import unittest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from utils.timers import (  # noqa: E402
    AsyncioClock,
    Debouncer,
    DeferredAction,
    PeriodicAction,
    VirtualClock,
)


class VirtualClockTestCase(unittest.TestCase):
    def test_callbacks_fire_in_due_order(self):
        clock = VirtualClock()
        fired = []
        clock.call_later(0.3, lambda: fired.append(("b", clock.now())))
        clock.call_later(0.1, lambda: fired.append(("a", clock.now())))
        handle = clock.call_later(0.2, lambda: fired.append(("x", clock.now())))
        handle.cancel()

        clock.advance(0.15)
        self.assertEqual(fired, [("a", 0.1)])
        self.assertEqual(clock.pending_count, 1)

        clock.advance(1)
        self.assertEqual([name for name, _ in fired], ["a", "b"])
        self.assertAlmostEqual(clock.now(), 1.15)


class DeferredActionTestCase(unittest.TestCase):
    def test_arm_pushes_deadline_back(self):
        clock = VirtualClock()
        calls = []
        action = DeferredAction(clock, 0.2, lambda: calls.append(clock.now()))

        action.arm()
        clock.advance(0.15)
        action.arm()
        clock.advance(0.15)
        self.assertEqual(calls, [])
        self.assertTrue(action.pending)

        clock.advance(0.05)
        self.assertEqual(len(calls), 1)
        self.assertFalse(action.pending)

    def test_cancel(self):
        clock = VirtualClock()
        calls = []
        action = DeferredAction(clock, 0.2, lambda: calls.append(1))
        action.arm()
        action.cancel()
        clock.advance(1)
        self.assertEqual(calls, [])
        # cancelling twice is harmless
        action.cancel()


class DebouncerTestCase(unittest.TestCase):
    def test_only_last_value_delivered(self):
        clock = VirtualClock()
        seen = []
        debouncer = Debouncer(clock, 0.3, seen.append)
        for text in ("j", "jo", "joh"):
            debouncer.push(text)
            clock.advance(0.1)
        self.assertEqual(seen, [])
        clock.advance(0.3)
        self.assertEqual(seen, ["joh"])

    def test_cancel_drops_pending_value(self):
        clock = VirtualClock()
        seen = []
        debouncer = Debouncer(clock, 0.3, seen.append)
        debouncer.push("abc")
        debouncer.cancel()
        clock.advance(1)
        self.assertEqual(seen, [])
        self.assertFalse(debouncer.pending)


class PeriodicActionTestCase(unittest.TestCase):
    def test_runs_until_stopped(self):
        clock = VirtualClock()
        ticks = []
        periodic = PeriodicAction(clock, 10, lambda: ticks.append(clock.now()))
        periodic.start()
        clock.advance(35)
        self.assertEqual(ticks, [10, 20, 30])

        periodic.stop()
        self.assertFalse(periodic.running)
        clock.advance(100)
        self.assertEqual(len(ticks), 3)

    def test_failing_callback_keeps_schedule(self):
        clock = VirtualClock()
        ticks = []

        def tick():
            ticks.append(clock.now())
            raise RuntimeError("boom")

        periodic = PeriodicAction(clock, 5, tick)
        periodic.start()
        with self.assertRaises(RuntimeError):
            clock.advance(5)
        self.assertTrue(periodic.running)
        self.assertEqual(clock.pending_count, 1)


class AsyncioClockTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_deferred_action_on_running_loop(self):
        done = asyncio.Event()
        action = DeferredAction(AsyncioClock(), 0.01, done.set)
        action.arm()
        await asyncio.wait_for(done.wait(), 1)
        self.assertFalse(action.pending)


if __name__ == "__main__":
    unittest.main()
