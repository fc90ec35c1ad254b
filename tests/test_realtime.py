"""Tests for observed travel times."""

import sys
import unittest
from unittest.mock import patch
from pathlib import Path

# Add src to path so we can import accessroute
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from google.transit import gtfs_realtime_pb2

from accessroute.models import ArrivalSample, EdgeKey
from accessroute.realtime import TravelTimeCache, arrival_samples_from_feed, calculate_travel_times


def arrivals(trip_id, route_id, *stops):
    """Samples for one trip from (stop id, seconds) pairs."""
    return [ArrivalSample(trip_id, stop_id, route_id, float(t)) for stop_id, t in stops]


class TestCalculateTravelTimes(unittest.TestCase):
    """Test deriving per-edge times from arrival batches."""

    def test_consecutive_stops(self):
        """Test each consecutive pair of a trip yields one edge."""
        samples = arrivals("t1", "1", ("120N", 0), ("127N", 300), ("132N", 420))
        times = calculate_travel_times(samples)

        self.assertEqual(times, {
            EdgeKey("120", "127", "1"): (5.0, 1),
            EdgeKey("127", "132", "1"): (2.0, 1),
        })

    def test_orders_by_time_within_trip(self):
        samples = arrivals("t1", "1", ("132S", 420), ("120S", 0), ("127S", 300))
        self.assertIn(EdgeKey("120", "127", "1"), calculate_travel_times(samples))

    def test_trips_are_kept_apart(self):
        """Test arrivals of different trips are never paired."""
        samples = arrivals("t1", "1", ("120N", 0)) + arrivals("t2", "1", ("127N", 300))
        self.assertEqual(calculate_travel_times(samples), {})

    def test_outliers_discarded(self):
        samples = (
            arrivals("t1", "1", ("120N", 0), ("127N", 30))  # half a minute
            + arrivals("t2", "1", ("120N", 0), ("127N", 1200))  # twenty minutes
            + arrivals("t3", "1", ("120N", 0), ("127N", 60))  # exactly one minute
        )
        self.assertEqual(calculate_travel_times(samples), {EdgeKey("120", "127", "1"): (1.0, 1)})

    def test_batch_mean(self):
        samples = (
            arrivals("t1", "A", ("A27S", 0), ("A31S", 300))
            + arrivals("t2", "A", ("A27S", 600), ("A31S", 1020))
        )
        self.assertEqual(calculate_travel_times(samples), {EdgeKey("A27", "A31", "A"): (6.0, 2)})

    def test_same_station_platforms_ignored(self):
        samples = arrivals("t1", "1", ("127N", 0), ("127S", 120))
        self.assertEqual(calculate_travel_times(samples), {})

    def test_empty_batch(self):
        self.assertEqual(calculate_travel_times([]), {})


class TestTravelTimeCache(unittest.TestCase):
    """Test the rolling travel-time cache."""

    KEY = EdgeKey("120", "127", "1")

    def setUp(self):
        self.cache = TravelTimeCache()

    def test_update_and_snapshot(self):
        updated = self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)

        self.assertEqual(updated, 1)
        self.assertEqual(self.cache.snapshot(now=1000), {self.KEY: 5.0})
        self.assertEqual(self.cache.get_travel_time("120", "127", "1", now=1000), 5.0)
        self.assertIsNone(self.cache.get_travel_time("127", "120", "1", now=1000))

    def test_exponential_smoothing(self):
        """Test a new observation is blended into the existing estimate."""
        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)
        self.cache.update(arrivals("t2", "1", ("120N", 0), ("127N", 600)), now=1010)

        entry = self.cache._times[self.KEY]
        self.assertAlmostEqual(entry.minutes, 6.5)
        self.assertEqual(entry.sample_count, 2)
        self.assertEqual(entry.updated_at, 1010)

    def test_stale_entries_ignored(self):
        """Test entries past the TTL are invisible to readers."""
        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)

        self.assertIn(self.KEY, self.cache.snapshot(now=1030))
        self.assertEqual(self.cache.snapshot(now=1031), {})
        self.assertIsNone(self.cache.get_travel_time("120", "127", "1", now=1031))

    @patch("accessroute.realtime.time")
    def test_wall_clock_by_default(self, mock_time):
        """Test the TTL runs on the wall clock when no time is given."""
        mock_time.time.return_value = 1000.0
        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)))

        mock_time.time.return_value = 1030.0
        self.assertEqual(self.cache.snapshot(), {self.KEY: 5.0})
        mock_time.time.return_value = 1031.0
        self.assertEqual(self.cache.snapshot(), {})
        self.assertTrue(self.cache.stats()["is_stale"])

    def test_min_samples(self):
        cache = TravelTimeCache(min_samples=2)
        cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)
        self.assertEqual(cache.snapshot(now=1000), {})
        self.assertIsNone(cache.get_travel_time("120", "127", "1", now=1000))

        cache.update(arrivals("t2", "1", ("120N", 0), ("127N", 300)), now=1000)
        snapshot = cache.snapshot(now=1000)
        self.assertEqual(list(snapshot), [self.KEY])
        self.assertAlmostEqual(snapshot[self.KEY], 5.0)
        self.assertAlmostEqual(cache.get_travel_time("120", "127", "1", now=1000), 5.0)

    def test_snapshot_is_detached(self):
        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)
        snapshot = self.cache.snapshot(now=1000)
        self.cache.clear()
        self.assertEqual(snapshot, {self.KEY: 5.0})

    def test_refresh(self):
        """Test refresh pulls samples from the given callable."""
        ok = self.cache.refresh(lambda: arrivals("t1", "1", ("120N", 0), ("127N", 300)))

        self.assertTrue(ok)
        self.assertEqual(self.cache.snapshot(), {self.KEY: 5.0})

    def test_refresh_failure_keeps_cache(self):
        """Test a failing fetch is logged and leaves the cache alone."""
        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)

        def failing_fetch():
            raise ConnectionError("feed unavailable")

        with self.assertLogs("accessroute.realtime", level="WARNING"):
            ok = self.cache.refresh(failing_fetch)

        self.assertFalse(ok)
        self.assertEqual(self.cache.snapshot(now=1000), {self.KEY: 5.0})

    def test_stats(self):
        stats = self.cache.stats(now=1000)
        self.assertEqual(stats["entry_count"], 0)
        self.assertTrue(stats["is_stale"])

        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300), ("132N", 420)), now=1000)
        stats = self.cache.stats(now=1010)
        self.assertEqual(stats["entry_count"], 2)
        self.assertEqual(stats["last_updated"], 1000)
        self.assertFalse(stats["is_stale"])

    def test_clear(self):
        self.cache.update(arrivals("t1", "1", ("120N", 0), ("127N", 300)), now=1000)
        self.cache.clear()
        self.assertEqual(self.cache.snapshot(now=1000), {})
        self.assertEqual(self.cache.stats(now=1000)["entry_count"], 0)

    def test_invalid_smoothing(self):
        with self.assertRaises(ValueError):
            TravelTimeCache(smoothing=0)
        with self.assertRaises(ValueError):
            TravelTimeCache(smoothing=1.5)


class TestArrivalSamplesFromFeed(unittest.TestCase):
    """Test GTFS-Realtime parsing."""

    @staticmethod
    def _create_feed() -> bytes:
        feed = gtfs_realtime_pb2.FeedMessage()
        feed.header.gtfs_realtime_version = "2.0"

        entity = feed.entity.add()
        entity.id = "1"
        trip_update = entity.trip_update
        trip_update.trip.trip_id = "001"
        trip_update.trip.route_id = "1"

        stop_time = trip_update.stop_time_update.add()
        stop_time.stop_id = "120N"
        stop_time.arrival.time = 1700000000

        stop_time = trip_update.stop_time_update.add()
        stop_time.stop_id = "127N"
        stop_time.departure.time = 1700000300

        stop_time = trip_update.stop_time_update.add()
        stop_time.stop_id = "132N"

        alert = feed.entity.add()
        alert.id = "2"
        alert.alert.header_text.translation.add().text = "Delays"

        return feed.SerializeToString()

    def test_parses_trip_updates(self):
        samples = arrival_samples_from_feed(self._create_feed())

        self.assertEqual(samples, [
            ArrivalSample("001", "120N", "1", 1700000000.0),
            ArrivalSample("001", "127N", "1", 1700000300.0),
        ])

    def test_feed_into_cache(self):
        cache = TravelTimeCache()
        cache.update(arrival_samples_from_feed(self._create_feed()), now=1000)
        self.assertEqual(cache.snapshot(now=1000), {EdgeKey("120", "127", "1"): 5.0})

    def test_empty_feed(self):
        self.assertEqual(arrival_samples_from_feed(b""), [])


if __name__ == "__main__":
    unittest.main()
