"""Static subway line topology loader."""

import csv
import io
import json
import logging
import re
from typing import Dict, List, Optional, Tuple

from .models import LineInfo, LineStation, TopologyError

logger = logging.getLogger(__name__)

DEFAULT_LINE_COLOR = "#808183"
DEFAULT_TEXT_COLOR = "#FFFFFF"

# Line groupings by trunk color
LINE_GROUPS = {
    "red": {"name": "Broadway-7th Avenue", "lines": ["1", "2", "3"], "color": "#EE352E"},
    "green": {"name": "Lexington Avenue", "lines": ["4", "5", "6"], "color": "#00933C"},
    "purple": {"name": "Flushing", "lines": ["7"], "color": "#B933AD"},
    "blue": {"name": "8th Avenue", "lines": ["A", "C", "E"], "color": "#0039A6"},
    "orange": {"name": "6th Avenue", "lines": ["B", "D", "F", "M"], "color": "#FF6319"},
    "lime": {"name": "Crosstown", "lines": ["G"], "color": "#6CBE45"},
    "brown": {"name": "Nassau Street", "lines": ["J", "Z"], "color": "#996633"},
    "gray": {"name": "Canarsie", "lines": ["L"], "color": "#A7A9AC"},
    "yellow": {"name": "Broadway", "lines": ["N", "Q", "R", "W"], "color": "#FCCC0A"},
    "shuttle": {"name": "Shuttles", "lines": ["S", "SF", "SR"], "color": "#808183"},
    "sir": {"name": "Staten Island", "lines": ["SIR"], "color": "#0039A6"},
}

_PLATFORM_SUFFIX = re.compile(r"(?<=\d)[NS]$")


def base_station_id(stop_id: str) -> str:
    """Strip the direction suffix from a platform stop id ("A15N" -> "A15")."""
    return _PLATFORM_SUFFIX.sub("", stop_id)


def get_line_group(line_id: str) -> Optional[str]:
    """Return the LINE_GROUPS key a line belongs to, or None."""
    for group_id, group in LINE_GROUPS.items():
        if line_id in group["lines"]:
            return group_id
    return None


def _parse_coordinate(value, field_name: str, where: str) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise TopologyError(f"{where}: {field_name} must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise TopologyError(f"{where}: {field_name} must be a number, got {value!r}")


def _parse_station(raw, where: str) -> LineStation:
    if not isinstance(raw, dict):
        raise TopologyError(f"{where}: station record must be an object")

    station_id = raw.get("id")
    name = raw.get("name")
    if not isinstance(station_id, str) or not station_id:
        raise TopologyError(f"{where}: station is missing an id")
    if not isinstance(name, str) or not name.strip():
        raise TopologyError(f"{where}: station {station_id} is missing a name")

    transfers = raw.get("transfer") or []
    if not isinstance(transfers, list):
        raise TopologyError(f"{where}: transfer hints for {station_id} must be a list")

    where = f"{where} ({station_id})"
    return LineStation(
        id=station_id,
        name=name,
        is_terminal=raw.get("type") == "terminal",
        is_express=bool(raw.get("express", False)),
        transfers=tuple(str(t) for t in transfers),
        branch=raw.get("branch"),
        latitude=_parse_coordinate(raw.get("lat"), "lat", where),
        longitude=_parse_coordinate(raw.get("lon"), "lon", where),
    )


class LineTopology:
    """Loads and indexes ordered station sequences per subway line."""

    def __init__(self):
        """Initialize an empty topology."""
        self.lines: Dict[str, LineInfo] = {}
        self.coordinates: Dict[str, Tuple[float, float]] = {}  # station id -> (lat, lon)

    @classmethod
    def from_dict(cls, data: Dict) -> "LineTopology":
        """Create a topology from a line id -> line record mapping."""
        topology = cls()
        topology.load_from_dict(data)
        return topology

    def load_from_dict(self, data: Dict) -> None:
        """
        Load line records.

        Args:
            data: Mapping of line id to {"name", "color", "textColor", "stations": [...]}.
                  Each station has "id", "name" and optionally "type", "express",
                  "transfer", "branch", "lat", "lon".

        Raises:
            TopologyError: If any record is malformed.
        """
        if not isinstance(data, dict):
            raise TopologyError("Line topology must be a mapping of line id to line record")

        lines: Dict[str, LineInfo] = {}
        for line_id, raw in data.items():
            where = f"line {line_id}"
            if not isinstance(raw, dict):
                raise TopologyError(f"{where}: line record must be an object")
            raw_stations = raw.get("stations")
            if not isinstance(raw_stations, list):
                raise TopologyError(f"{where}: stations must be a list")

            stations = tuple(
                _parse_station(s, f"{where} station #{i}") for i, s in enumerate(raw_stations)
            )
            lines[str(line_id)] = LineInfo(
                line_id=str(line_id),
                name=raw.get("name") or str(line_id),
                color=raw.get("color") or DEFAULT_LINE_COLOR,
                text_color=raw.get("textColor") or DEFAULT_TEXT_COLOR,
                stations=stations,
            )

        self.lines.update(lines)
        for line in lines.values():
            for station in line.stations:
                if station.latitude is not None and station.longitude is not None:
                    self.coordinates.setdefault(station.id, (station.latitude, station.longitude))

        logger.info(f"Loaded {len(lines)} lines")

    def load_from_file(self, path: str) -> None:
        """Load line records from a JSON file."""
        logger.info(f"Loading line topology from {path}")
        with open(path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as e:
                raise TopologyError(f"Invalid topology JSON in {path}: {e}") from e
        self.load_from_dict(data)

    def load_stops_file(self, stops_path: str) -> None:
        """Load station coordinates from a GTFS stops.txt file."""
        with open(stops_path, "r", encoding="utf-8") as f:
            self._load_stops(f.read())

    def _load_stops(self, csv_content: str) -> None:
        """Parse stops.txt rows into the coordinate index."""
        reader = csv.DictReader(io.StringIO(csv_content))
        loaded = 0

        for row in reader:
            stop_id = row.get("stop_id")
            if not stop_id:
                continue
            where = f"stops.txt ({stop_id})"
            latitude = _parse_coordinate(row.get("stop_lat"), "stop_lat", where)
            longitude = _parse_coordinate(row.get("stop_lon"), "stop_lon", where)
            if latitude is None or longitude is None:
                continue

            # Parent stations win over their platforms
            station_id = base_station_id(stop_id)
            if station_id == stop_id or station_id not in self.coordinates:
                self.coordinates[station_id] = (latitude, longitude)
                loaded += 1

        logger.debug(f"Loaded coordinates for {loaded} stops")

    def line_ids(self) -> List[str]:
        """All line ids in load order."""
        return list(self.lines.keys())

    def get_line(self, line_id: str) -> LineInfo:
        """Get a line by id."""
        if line_id not in self.lines:
            raise ValueError(f"Line {line_id} not found")
        return self.lines[line_id]

    def get_line_stations(self, line_id: str) -> List[LineStation]:
        line = self.lines.get(line_id)
        return list(line.stations) if line else []

    def get_line_color(self, line_id: str) -> str:
        line = self.lines.get(line_id)
        return line.color if line else DEFAULT_LINE_COLOR

    def get_line_text_color(self, line_id: str) -> str:
        line = self.lines.get(line_id)
        return line.text_color if line else DEFAULT_TEXT_COLOR

    def get_line_name(self, line_id: str) -> str:
        line = self.lines.get(line_id)
        return line.name if line else line_id

    def get_line_terminals(self, line_id: str) -> Tuple[Optional[LineStation], Optional[LineStation]]:
        """Return the (northern, southern) terminals, i.e. first and last stations."""
        stations = self.get_line_stations(line_id)
        if not stations:
            return None, None
        return stations[0], stations[-1]

    def find_station_index(self, line_id: str, station_id: str) -> int:
        """Index of a station (or one of its platforms) on a line, or -1."""
        station_id = base_station_id(station_id)
        for i, station in enumerate(self.get_line_stations(line_id)):
            if station.id == station_id:
                return i
        return -1

    def is_station_on_line(self, line_id: str, station_id: str) -> bool:
        return self.find_station_index(line_id, station_id) != -1

    def get_lines_at_station(self, station_id: str) -> List[str]:
        """All line ids that stop at a station."""
        return [line_id for line_id in self.lines if self.is_station_on_line(line_id, station_id)]

    def get_station_name(self, stop_id: str) -> Optional[str]:
        """Station name for a stop id, searching every line."""
        station_id = base_station_id(stop_id)
        for line in self.lines.values():
            for station in line.stations:
                if station.id == station_id:
                    return station.name
        return None

    def get_coordinates(self, station_id: str) -> Optional[Tuple[float, float]]:
        """(lat, lon) for a station from line data or stops.txt."""
        return self.coordinates.get(base_station_id(station_id))

    def merge_line_stations(self, line_ids: List[str]) -> List[LineStation]:
        """
        Merge several lines' stations for shared-trunk display.

        Keeps the first line's order and appends stations unique to the other lines.
        """
        if not line_ids:
            return []

        merged = self.get_line_stations(line_ids[0])
        seen = {s.id for s in merged}
        for line_id in line_ids[1:]:
            for station in self.get_line_stations(line_id):
                if station.id not in seen:
                    merged.append(station)
                    seen.add(station.id)
        return merged

    def clear(self) -> None:
        """Clear all loaded data."""
        self.lines.clear()
        self.coordinates.clear()
        logger.info("Cleared line topology")
