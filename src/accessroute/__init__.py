"""accessroute - Accessibility-aware route planning for the MTA subway."""

__version__ = "0.1.0"

from .models import (
    AccessRouteError,
    AccessibleRoute,
    ArrivalSample,
    BlockedStation,
    EdgeKey,
    EquipmentOutage,
    GraphEdge,
    RouteResult,
    RouteSegment,
    StationGraph,
    StationNode,
    TopologyError,
)
from .topology import LineTopology
from .outages import OutageIndex, normalize_station_name, parse_outages
from .graph import GraphBuilder, build_station_graph
from .realtime import TravelTimeCache
from .solver import find_shortest_path
from .planner import RoutePlanner, find_routes

__all__ = [
    "RoutePlanner",
    "find_routes",
    "find_shortest_path",
    "LineTopology",
    "GraphBuilder",
    "build_station_graph",
    "TravelTimeCache",
    "OutageIndex",
    "normalize_station_name",
    "parse_outages",
    "AccessRouteError",
    "TopologyError",
    "AccessibleRoute",
    "ArrivalSample",
    "BlockedStation",
    "EdgeKey",
    "EquipmentOutage",
    "GraphEdge",
    "RouteResult",
    "RouteSegment",
    "StationGraph",
    "StationNode",
]
