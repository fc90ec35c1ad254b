"""Data models for accessible route planning."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, NamedTuple, Optional, Tuple

# Sentinel line id for walking transfers between station complexes
TRANSFER_LINE = "TRANSFER"

ELEVATOR = "ELEVATOR"
ESCALATOR = "ESCALATOR"


class AccessRouteError(Exception):
    """Base class for accessroute errors."""


class TopologyError(AccessRouteError, ValueError):
    """Raised when static line topology is malformed or incomplete."""


class EdgeKey(NamedTuple):
    """Identifies a directed hop between two stations on one line."""
    from_id: str
    to_id: str
    line: str

    def __str__(self) -> str:
        return f"{self.from_id}-{self.to_id}-{self.line}"

    @classmethod
    def parse(cls, text: str) -> "EdgeKey":
        """
        Parse the "from-to-line" string form.

        Station and line ids never contain "-", so any other number of parts
        is rejected rather than guessed at.
        """
        parts = text.split("-")
        if len(parts) != 3 or not all(parts):
            raise ValueError(f"Invalid edge key: {text!r}")
        return cls(*parts)


@dataclass(frozen=True)
class LineStation:
    """A station as it appears in a line's ordered stop list."""
    id: str
    name: str
    is_terminal: bool = False
    is_express: bool = False
    transfers: Tuple[str, ...] = ()  # Transfer hint station ids
    branch: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


@dataclass(frozen=True)
class LineInfo:
    """A subway line and its stations in running order."""
    line_id: str
    name: str
    color: str
    text_color: str
    stations: Tuple[LineStation, ...]


@dataclass(frozen=True)
class EquipmentOutage:
    """An elevator or escalator outage reported for a station."""
    equipment_id: str
    station_name: str
    equipment_type: str  # ELEVATOR or ESCALATOR
    ada_compliant: bool
    outage_reason: Optional[str] = None
    is_active: bool = True  # False for planned/upcoming outages
    borough: Optional[str] = None
    serving: Optional[str] = None
    train_lines: Tuple[str, ...] = ()
    outage_start: Optional[datetime] = None
    estimated_return: Optional[datetime] = None

    @property
    def is_elevator(self) -> bool:
        return self.equipment_type == ELEVATOR

    @property
    def blocks_access(self) -> bool:
        """True if this outage makes the station inaccessible to wheelchair users."""
        return self.is_active and self.is_elevator and self.ada_compliant


@dataclass(frozen=True)
class StationNode:
    """A station in the routing graph."""
    id: str
    name: str
    lines: Tuple[str, ...]
    has_elevator: bool
    is_accessible: bool
    outages: Tuple[EquipmentOutage, ...]
    express_stops: Dict[str, bool]  # line id -> is express stop
    latitude: float
    longitude: float


@dataclass(frozen=True)
class GraphEdge:
    """A directed edge in the routing graph."""
    from_id: str
    to_id: str
    line: str
    is_express: bool
    estimated_minutes: float
    is_transfer: bool = False
    realtime_minutes: Optional[float] = None

    @property
    def key(self) -> EdgeKey:
        return EdgeKey(self.from_id, self.to_id, self.line)


@dataclass
class StationGraph:
    """Station nodes plus an adjacency list of outgoing edges."""
    nodes: Dict[str, StationNode]
    adjacency: Dict[str, List[GraphEdge]]

    def edges_from(self, station_id: str) -> List[GraphEdge]:
        return self.adjacency.get(station_id, [])

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self.adjacency.values())


@dataclass
class RouteSegment:
    """One hop of a route, either on a line or a transfer."""
    from_station_id: str
    from_station_name: str
    to_station_id: str
    to_station_name: str
    line: str
    is_express: bool
    minutes: float
    is_accessible: bool
    has_elevator_outage: bool
    is_transfer: bool = False
    is_realtime: bool = False  # Minutes came from observed travel times


@dataclass
class BlockedStation:
    """A station on a route that cannot be used step-free."""
    station_id: str
    station_name: str
    outage_reason: Optional[str]


@dataclass
class AccessibleRoute:
    """A route with its accessibility annotations."""
    segments: List[RouteSegment]
    total_minutes: float
    is_fully_accessible: bool
    blocked_stations: List[BlockedStation] = field(default_factory=list)
    transfer_count: int = 0

    @property
    def line_signature(self) -> Tuple[str, ...]:
        """Ordered line ids of the segments, used to detect duplicate routes."""
        return tuple(segment.line for segment in self.segments)

    @property
    def station_ids(self) -> List[str]:
        """All station ids visited, origin first."""
        if not self.segments:
            return []
        return [self.segments[0].from_station_id] + [s.to_station_id for s in self.segments]


@dataclass
class RouteResult:
    """Primary route, ranked alternatives and any warnings for a query."""
    primary: Optional[AccessibleRoute]
    alternatives: List[AccessibleRoute]
    warnings: List[str]


@dataclass(frozen=True)
class ArrivalSample:
    """A predicted or observed arrival of one trip at one stop."""
    trip_id: str
    stop_id: str
    route_id: str
    arrival_time: float  # Unix timestamp


@dataclass(frozen=True)
class RealtimeTravelTime:
    """Smoothed observed travel time for one edge."""
    key: EdgeKey
    minutes: float
    sample_count: int
    updated_at: float  # Unix timestamp
