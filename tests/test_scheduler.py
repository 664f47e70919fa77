"""
Weather Obs Tests - Observation Scheduler
=========================================

Unit tests for ObservationScheduler:

Test Coverage:
--------------
1. Time Guards
   - Non-finite / non-numeric simulation times are no-ops

2. Due Handling
   - Not-due sensors leave the latest table untouched
   - Malformed sensors are skipped silently
   - None observations are not stored

3. Fault Isolation
   - is_due / observe / mark_observed / subscriber errors are reported
     and do not stop the remaining sensors

4. Latest Table
   - get_latest / get_all_latest contents and snapshot semantics
   - No regression to older tick times
   - Duplicate sensor ids
"""

import math
import unittest
import logging

from weather_obs.core import CollectingFaultSink, LoggingFaultSink, ObservationScheduler
from weather_obs.sensors import ObservationContext

from tests.helpers import RadarStub, StubSensor, counter, make_obs

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class TestTimeGuards(unittest.TestCase):
    """Non-finite times never reach sensors."""

    def setUp(self):
        self.subscriber = counter()
        self.scheduler = ObservationScheduler(on_new_observation=self.subscriber)
        self.sensor = StubSensor("s1")
        self.scheduler.add_sensor(self.sensor)

    def test_non_finite_time_is_noop(self):
        """NaN, infinities and non-numbers do nothing."""
        for bad in (math.nan, math.inf, -math.inf, None, "10", True):
            stored = self.scheduler.update(bad, ObservationContext())
            self.assertEqual(stored, 0)

        self.assertEqual(self.sensor.due_calls, [])
        self.assertEqual(self.sensor.observe_calls, [])
        self.assertEqual(self.scheduler.get_all_latest(), [])
        self.assertEqual(self.subscriber.calls, [])
        self.assertEqual(self.scheduler.tick_count, 0)

    def test_integer_beyond_float_range_is_noop(self):
        """Huge integers are not representable times and must not raise."""
        self.assertEqual(self.scheduler.update(10**400), 0)
        self.assertEqual(self.sensor.due_calls, [])
        self.assertEqual(self.scheduler.tick_count, 0)

    def test_finite_time_ticks(self):
        """A finite time evaluates the sensor."""
        self.assertEqual(self.scheduler.update(0.0), 1)
        self.assertEqual(self.scheduler.tick_count, 1)
        self.assertEqual(len(self.subscriber.calls), 1)

    def test_default_context_carries_time(self):
        """Without a context, observe() still sees the tick time."""
        self.scheduler.update(42.0)
        context = self.sensor.observe_calls[0]
        self.assertIsInstance(context, ObservationContext)
        self.assertEqual(context.sim_time_seconds, 42.0)


class TestDueHandling(unittest.TestCase):
    """Due predicate and observe results."""

    def test_not_due_leaves_entry_unchanged(self):
        """A sensor reporting not-due keeps its previous entry."""
        sensor = StubSensor("s1")
        scheduler = ObservationScheduler()
        scheduler.add_sensor(sensor)

        scheduler.update(1.0)
        first = scheduler.get_latest("s1")

        sensor.due = False
        scheduler.update(2.0)

        self.assertIs(scheduler.get_latest("s1"), first)
        self.assertEqual(len(sensor.observe_calls), 1)
        self.assertEqual(sensor.marked, [1.0])

    def test_malformed_sensor_skipped(self):
        """Objects without is_due are treated as not due, not as faults."""
        faults = CollectingFaultSink()
        scheduler = ObservationScheduler(fault_sink=faults)

        class NoDue:
            sensor_id = "broken"

            def observe(self, context):
                raise AssertionError("must not be called")

        good = StubSensor("good")
        scheduler.add_sensor(NoDue())
        scheduler.add_sensor(good)

        self.assertEqual(scheduler.update(5.0), 1)
        self.assertEqual(faults.total, 0)
        self.assertIsNotNone(scheduler.get_latest("good"))
        self.assertIsNone(scheduler.get_latest("broken"))

    def test_none_sensor_ignored(self):
        """add_sensor(None) registers nothing."""
        scheduler = ObservationScheduler()
        scheduler.add_sensor(None)
        self.assertEqual(len(scheduler), 0)

    def test_none_observation_not_stored(self):
        """observe() returning None is 'no observation this tick'."""
        subscriber = counter()
        sensor = StubSensor("s1", result=None)
        scheduler = ObservationScheduler(on_new_observation=subscriber)
        scheduler.add_sensor(sensor)

        self.assertEqual(scheduler.update(3.0), 0)
        self.assertIsNone(scheduler.get_latest("s1"))
        self.assertEqual(sensor.marked, [])
        self.assertEqual(subscriber.calls, [])

    def test_foreign_sensor_without_mark_observed_is_stamped(self):
        """Duck-typed sensors without mark_observed get _last_obs_time."""

        class Bare:
            sensor_id = "bare"

            def is_due(self, t):
                return True

            def observe(self, context):
                return make_obs("bare", context.sim_time_seconds)

        bare = Bare()
        scheduler = ObservationScheduler()
        scheduler.add_sensor(bare)
        scheduler.update(7.5)

        self.assertEqual(bare._last_obs_time, 7.5)

    def test_non_callable_subscriber_ignored(self):
        """A non-callable subscriber is the same as none."""
        scheduler = ObservationScheduler(on_new_observation="not callable")
        scheduler.add_sensor(StubSensor("s1"))
        self.assertEqual(scheduler.update(1.0), 1)
        self.assertIsNone(scheduler.on_new_observation)


class TestFaultIsolation(unittest.TestCase):
    """One failing sensor does not abort the tick."""

    def setUp(self):
        self.faults = CollectingFaultSink()
        self.subscriber = counter()
        self.scheduler = ObservationScheduler(
            on_new_observation=self.subscriber,
            fault_sink=self.faults,
        )

    def test_observe_error_isolated(self):
        """Sensors after a failing observe() are still evaluated."""
        before = StubSensor("before")
        failing = StubSensor("failing", raise_on="observe")
        after = StubSensor("after")
        for sensor in (before, failing, after):
            self.scheduler.add_sensor(sensor)

        stored = self.scheduler.update(10.0)

        self.assertEqual(stored, 2)
        self.assertIsNotNone(self.scheduler.get_latest("before"))
        self.assertIsNotNone(self.scheduler.get_latest("after"))
        self.assertIsNone(self.scheduler.get_latest("failing"))
        self.assertEqual(len(self.subscriber.calls), 2)

        self.assertEqual(self.faults.total, 1)
        fault = self.faults.faults[0]
        self.assertEqual(fault.sensor_id, "failing")
        self.assertEqual(fault.phase, "observe")
        self.assertIsInstance(fault.error, ValueError)

    def test_is_due_error_isolated(self):
        """A raising due check is reported and skipped."""
        self.scheduler.add_sensor(StubSensor("failing", raise_on="is_due"))
        self.scheduler.add_sensor(StubSensor("ok"))

        self.assertEqual(self.scheduler.update(1.0), 1)
        self.assertEqual([f.phase for f in self.faults.faults], ["is_due"])

    def test_mark_observed_error_keeps_observation(self):
        """The observation is stored and published even if marking fails."""
        self.scheduler.add_sensor(StubSensor("s1", raise_on="mark_observed"))

        self.assertEqual(self.scheduler.update(1.0), 1)
        self.assertIsNotNone(self.scheduler.get_latest("s1"))
        self.assertEqual(len(self.subscriber.calls), 1)
        self.assertEqual([f.phase for f in self.faults.faults], ["mark_observed"])

    def test_subscriber_error_isolated(self):
        """A raising subscriber does not stop later sensors."""
        seen = []

        def flaky(obs_set):
            seen.append(obs_set.sensor_id)
            if obs_set.sensor_id == "a":
                raise RuntimeError("serializer exploded")

        scheduler = ObservationScheduler(on_new_observation=flaky, fault_sink=self.faults)
        scheduler.add_sensor(StubSensor("a"))
        scheduler.add_sensor(StubSensor("b"))

        self.assertEqual(scheduler.update(1.0), 2)
        self.assertEqual(seen, ["a", "b"])
        self.assertEqual([(f.sensor_id, f.phase) for f in self.faults.faults], [("a", "notify")])

    def test_logging_fault_sink_counts_and_warns(self):
        """Default fault sink logs a warning and counts per sensor."""
        sink = LoggingFaultSink()
        scheduler = ObservationScheduler(fault_sink=sink)
        scheduler.add_sensor(StubSensor("failing", raise_on="observe"))

        with self.assertLogs("weather_obs.core.faults", level="WARNING") as captured:
            scheduler.update(1.0)
            scheduler.update(2.0)

        self.assertEqual(sink.counts["failing"], 2)
        self.assertEqual(sink.total, 2)
        self.assertIn("failing", captured.output[0])
        self.assertIn("observe", captured.output[0])


class TestLatestTable(unittest.TestCase):
    """Latest-observation-per-sensor semantics."""

    def test_all_latest_has_one_entry_per_sensor(self):
        """N sensors observing once -> N entries."""
        scheduler = ObservationScheduler()
        for i in range(5):
            scheduler.add_sensor(StubSensor(f"s{i}"))

        scheduler.update(0.0)

        latest = scheduler.get_all_latest()
        self.assertEqual(len(latest), 5)
        self.assertEqual({obs.sensor_id for obs in latest}, {f"s{i}" for i in range(5)})

    def test_all_latest_is_snapshot(self):
        """Mutating the returned list does not touch the table."""
        scheduler = ObservationScheduler()
        scheduler.add_sensor(StubSensor("s1"))
        scheduler.update(0.0)

        snapshot = scheduler.get_all_latest()
        snapshot.clear()

        self.assertEqual(len(scheduler.get_all_latest()), 1)

    def test_get_latest_missing(self):
        scheduler = ObservationScheduler()
        self.assertIsNone(scheduler.get_latest("nope"))

    def test_radar_scenario_no_stale_duplicate(self):
        """radar-1 fires at t=10; a regressed t=9 tick does not overwrite it."""
        subscriber = counter()
        radar = RadarStub("radar-1", cadence_seconds=5.0)
        scheduler = ObservationScheduler(on_new_observation=subscriber)
        scheduler.add_sensor(radar)

        scheduler.update(10.0, ObservationContext(truth_state={}, sim_time_seconds=10.0))
        stored = scheduler.get_latest("radar-1")

        self.assertIsNotNone(stored)
        self.assertEqual(stored.t, 10.0)
        self.assertIs(scheduler.get_latest("radar-1"), stored)

        self.assertFalse(radar.is_due(9.0))
        scheduler.update(9.0, ObservationContext(truth_state={}, sim_time_seconds=9.0))

        self.assertIs(scheduler.get_latest("radar-1"), stored)
        self.assertEqual(radar.observe_count, 1)
        self.assertEqual(len(subscriber.calls), 1)
        self.assertEqual(radar.last_obs_time, 10.0)

    def test_regressed_time_never_overwrites(self):
        """Even an always-due sensor cannot push an older tick into the table."""
        subscriber = counter()
        sensor = StubSensor("s1")
        scheduler = ObservationScheduler(on_new_observation=subscriber)
        scheduler.add_sensor(sensor)

        scheduler.update(10.0)
        newest = scheduler.get_latest("s1")
        scheduler.update(9.0)

        self.assertIs(scheduler.get_latest("s1"), newest)
        self.assertEqual(scheduler.get_latest_time("s1"), 10.0)
        self.assertEqual(sensor.marked, [10.0])
        self.assertEqual(len(subscriber.calls), 1)

    def test_same_time_overwrites(self):
        """Equal tick times replace the entry."""
        sensor = StubSensor("s1")
        scheduler = ObservationScheduler()
        scheduler.add_sensor(sensor)

        scheduler.update(4.0)
        first = scheduler.get_latest("s1")
        scheduler.update(4.0)

        self.assertIsNot(scheduler.get_latest("s1"), first)

    def test_duplicate_ids_both_participate(self):
        """Sensors sharing an id are both ticked; the later one wins the slot."""
        first = StubSensor("dup", result=make_obs("dup", 1.0, value=1.0))
        second = StubSensor("dup", result=make_obs("dup", 1.0, value=2.0))
        scheduler = ObservationScheduler()
        scheduler.add_sensor(first)
        scheduler.add_sensor(second)

        self.assertEqual(scheduler.update(1.0), 2)
        self.assertEqual(len(first.observe_calls), 1)
        self.assertEqual(len(second.observe_calls), 1)
        self.assertIs(scheduler.get_latest("dup"), second.result)
        self.assertEqual(len(scheduler.get_all_latest()), 1)

    def test_registration_order(self):
        """Sensors are evaluated in registration order."""
        order = []
        scheduler = ObservationScheduler(on_new_observation=lambda obs: order.append(obs.sensor_id))
        for name in ("c", "a", "b"):
            scheduler.add_sensor(StubSensor(name))

        scheduler.update(0.0)

        self.assertEqual(order, ["c", "a", "b"])


if __name__ == "__main__":
    unittest.main()
