import unittest

from rover_nav.scheduler import TickScheduler


class TestTickScheduler(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = TickScheduler()
        self.fired = []

    def record(self, name):
        return lambda: self.fired.append(name)

    def test_action_fires_after_delay(self) -> None:
        self.scheduler.schedule(0.5, self.record("settle"))
        for _ in range(9):
            self.scheduler.advance(0.05)
        self.assertEqual(self.fired, [])
        self.scheduler.advance(0.05)
        self.assertEqual(self.fired, ["settle"])
        self.assertEqual(self.scheduler.pending, 0)

    def test_due_order_then_fifo(self) -> None:
        self.scheduler.schedule(0.2, self.record("late"))
        self.scheduler.schedule(0.1, self.record("first"))
        self.scheduler.schedule(0.1, self.record("second"))
        fired = self.scheduler.advance(0.3)
        self.assertEqual(fired, 3)
        self.assertEqual(self.fired, ["first", "second", "late"])

    def test_zero_delay_fires_on_next_advance(self) -> None:
        self.scheduler.schedule(0.0, self.record("now"))
        self.assertEqual(self.fired, [])
        self.scheduler.advance(0.0)
        self.assertEqual(self.fired, ["now"])

    def test_action_scheduled_while_firing(self) -> None:
        def chain():
            self.fired.append("outer")
            self.scheduler.schedule(0.0, self.record("inner"))

        self.scheduler.schedule(0.1, chain)
        self.scheduler.advance(0.1)
        self.assertEqual(self.fired, ["outer", "inner"])

    def test_cancel(self) -> None:
        entry = self.scheduler.schedule(0.1, self.record("cancelled"))
        self.scheduler.schedule(0.1, self.record("kept"))
        self.scheduler.cancel(entry)
        self.scheduler.advance(1.0)
        self.assertEqual(self.fired, ["kept"])
        self.assertTrue(entry.cancelled)

    def test_cancel_all(self) -> None:
        self.scheduler.schedule(0.1, self.record("a"))
        self.scheduler.schedule(0.2, self.record("b"))
        self.scheduler.cancel_all()
        self.assertEqual(self.scheduler.pending, 0)
        self.scheduler.advance(1.0)
        self.assertEqual(self.fired, [])


if __name__ == "__main__":
    unittest.main()
