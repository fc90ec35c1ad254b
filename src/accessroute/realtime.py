"""Observed travel times between stations from GTFS-Realtime arrivals."""

import logging
import threading
import time
from dataclasses import asdict
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from google.transit import gtfs_realtime_pb2

from .models import ArrivalSample, EdgeKey, RealtimeTravelTime
from .topology import base_station_id

logger = logging.getLogger(__name__)

# Entries older than this are ignored by readers
CACHE_TTL_SECONDS = 30

# Weight of a new observation in the exponential moving average
SMOOTHING_FACTOR = 0.3

# Entries need this many samples before routing trusts them
MIN_SAMPLES = 1

# Plausible minutes between consecutive stops; anything else is an outlier
MIN_PLAUSIBLE_MINUTES = 1.0
MAX_PLAUSIBLE_MINUTES = 15.0


def calculate_travel_times(
    samples: Iterable[ArrivalSample],
    min_minutes: float = MIN_PLAUSIBLE_MINUTES,
    max_minutes: float = MAX_PLAUSIBLE_MINUTES,
) -> Dict[EdgeKey, Tuple[float, int]]:
    """
    Derive per-edge travel times from a batch of arrivals.

    Arrivals are grouped by trip and ordered by time; the gap between each
    pair of consecutive stops is one observation for that edge. Platform stop
    ids are reduced to their station ids.

    Returns:
        Mapping of edge key to (mean minutes, observation count) for the batch.
    """
    frame = pd.DataFrame([asdict(s) for s in samples])
    if frame.empty:
        return {}

    frame["station_id"] = frame["stop_id"].map(base_station_id)
    frame = frame.sort_values(["trip_id", "arrival_time"], kind="mergesort")

    by_trip = frame.groupby("trip_id", sort=False)
    frame["next_station_id"] = by_trip["station_id"].shift(-1)
    frame["minutes"] = (by_trip["arrival_time"].shift(-1) - frame["arrival_time"]) / 60.0

    deltas = frame.dropna(subset=["next_station_id", "minutes"])
    deltas = deltas[
        (deltas["station_id"] != deltas["next_station_id"])
        & (deltas["minutes"] >= min_minutes)
        & (deltas["minutes"] <= max_minutes)
    ]
    if deltas.empty:
        return {}

    summary = deltas.groupby(["station_id", "next_station_id", "route_id"])["minutes"].agg(["mean", "count"])
    return {
        EdgeKey(from_id, to_id, route_id): (float(row["mean"]), int(row["count"]))
        for (from_id, to_id, route_id), row in summary.iterrows()
    }


def arrival_samples_from_feed(feed_data: bytes) -> List[ArrivalSample]:
    """
    Extract arrival samples from a GTFS-Realtime FeedMessage payload.

    Stop time updates without an arrival use the departure time; updates with
    neither are skipped.
    """
    feed = gtfs_realtime_pb2.FeedMessage()
    feed.ParseFromString(feed_data)

    samples: List[ArrivalSample] = []
    for entity in feed.entity:
        if not entity.HasField("trip_update"):
            continue

        trip = entity.trip_update.trip
        for stop_time_update in entity.trip_update.stop_time_update:
            if stop_time_update.HasField("arrival") and stop_time_update.arrival.time:
                arrival_time = stop_time_update.arrival.time
            elif stop_time_update.HasField("departure") and stop_time_update.departure.time:
                arrival_time = stop_time_update.departure.time
            else:
                continue

            samples.append(ArrivalSample(
                trip_id=trip.trip_id,
                stop_id=stop_time_update.stop_id,
                route_id=trip.route_id,
                arrival_time=float(arrival_time),
            ))

    logger.debug(f"Extracted {len(samples)} arrival samples from feed")
    return samples


class TravelTimeCache:
    """
    Rolling estimate of actual travel time per edge.

    Writers build a new table and swap it in under a lock, so readers always
    see a complete table without locking.
    """

    def __init__(
        self,
        ttl: float = CACHE_TTL_SECONDS,
        smoothing: float = SMOOTHING_FACTOR,
        min_samples: int = MIN_SAMPLES,
    ):
        if not 0 < smoothing <= 1:
            raise ValueError(f"smoothing must be in (0, 1], got {smoothing}")
        self.ttl = ttl
        self.smoothing = smoothing
        self.min_samples = min_samples
        self._lock = threading.Lock()
        self._times: Dict[EdgeKey, RealtimeTravelTime] = {}
        self._last_updated = 0.0

    def update(self, samples: Iterable[ArrivalSample], now: Optional[float] = None) -> int:
        """
        Merge a batch of arrivals into the cache.

        Returns:
            Number of edges updated.
        """
        observed = calculate_travel_times(samples)
        now = time.time() if now is None else now

        with self._lock:
            times = dict(self._times)
            for key, (minutes, count) in observed.items():
                existing = times.get(key)
                if existing is not None:
                    minutes = self.smoothing * minutes + (1 - self.smoothing) * existing.minutes
                    count += existing.sample_count
                times[key] = RealtimeTravelTime(key=key, minutes=minutes, sample_count=count, updated_at=now)
            self._times = times
            self._last_updated = now

        logger.debug(f"Updated {len(observed)} travel times ({len(times)} cached)")
        return len(observed)

    def snapshot(self, now: Optional[float] = None) -> Dict[EdgeKey, float]:
        """Fresh, sufficiently sampled travel times for routing."""
        now = time.time() if now is None else now
        return {
            key: entry.minutes
            for key, entry in self._times.items()
            if now - entry.updated_at <= self.ttl and entry.sample_count >= self.min_samples
        }

    def get_travel_time(
        self,
        from_id: str,
        to_id: str,
        line: str,
        now: Optional[float] = None,
    ) -> Optional[float]:
        """Fresh, sufficiently sampled travel time for one edge, or None."""
        entry = self._times.get(EdgeKey(from_id, to_id, line))
        if entry is None or entry.sample_count < self.min_samples:
            return None
        now = time.time() if now is None else now
        if now - entry.updated_at > self.ttl:
            return None
        return entry.minutes

    def refresh(self, fetch_samples: Callable[[], Iterable[ArrivalSample]]) -> bool:
        """
        Fetch arrivals from a collaborator and update the cache.

        Failures are logged and the cache is left as is, so routing falls back
        to static estimates.
        """
        try:
            samples = list(fetch_samples())
        except Exception as e:
            logger.warning(f"Failed to refresh travel times: {e}")
            return False
        self.update(samples)
        return True

    def clear(self) -> None:
        with self._lock:
            self._times = {}
            self._last_updated = 0.0

    def stats(self, now: Optional[float] = None) -> Dict:
        """Entry count, last update time and whether the whole cache is stale."""
        now = time.time() if now is None else now
        return {
            "entry_count": len(self._times),
            "last_updated": self._last_updated,
            "is_stale": now - self._last_updated > self.ttl,
        }
