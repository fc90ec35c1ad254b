"""Dijkstra shortest paths over the station graph."""

import heapq
import itertools
import logging
import math
from typing import AbstractSet, Dict, List, Mapping, Optional, Tuple

from .assembler import PathStep, build_route, edge_weight
from .models import AccessibleRoute, EdgeKey, GraphEdge, StationGraph

logger = logging.getLogger(__name__)


def find_path(
    graph: StationGraph,
    from_id: str,
    to_id: str,
    require_accessible: bool = False,
    avoid_stations: AbstractSet[str] = frozenset(),
    realtime_times: Optional[Mapping[EdgeKey, float]] = None,
) -> Optional[List[PathStep]]:
    """
    Find the fastest path between two stations.

    Nodes in avoid_stations are never entered, and with require_accessible no
    inaccessible node is entered. The origin itself is exempt from both.

    Among paths of equal length the one whose nodes were queued first wins,
    so which of several tied paths is returned depends on adjacency order.

    Returns:
        List of (station id, inbound edge) steps starting at the origin with a
        None edge, or None if an endpoint is unknown or no path exists.
    """
    if from_id not in graph.nodes or to_id not in graph.nodes:
        return None

    distances: Dict[str, float] = {from_id: 0.0}
    previous: Dict[str, Tuple[str, GraphEdge]] = {}
    visited = set()
    counter = itertools.count()
    frontier = [(0.0, next(counter), from_id)]

    while frontier:
        distance, _, current = heapq.heappop(frontier)
        if current in visited:
            continue
        if current == to_id:
            break
        visited.add(current)

        for edge in graph.edges_from(current):
            neighbor = edge.to_id
            if neighbor in visited or neighbor in avoid_stations:
                continue
            if require_accessible and not graph.nodes[neighbor].is_accessible:
                continue

            candidate = distance + edge_weight(edge, realtime_times)
            if candidate < distances.get(neighbor, math.inf):
                distances[neighbor] = candidate
                previous[neighbor] = (current, edge)
                heapq.heappush(frontier, (candidate, next(counter), neighbor))

    if to_id not in distances:
        logger.debug(f"No path from {from_id} to {to_id}")
        return None

    path: List[PathStep] = []
    station_id = to_id
    while station_id != from_id:
        prior, edge = previous[station_id]
        path.append((station_id, edge))
        station_id = prior
    path.append((from_id, None))
    path.reverse()
    return path


def find_shortest_path(
    graph: StationGraph,
    from_id: str,
    to_id: str,
    require_accessible: bool = False,
    avoid_stations: AbstractSet[str] = frozenset(),
    realtime_times: Optional[Mapping[EdgeKey, float]] = None,
) -> Optional[AccessibleRoute]:
    """
    Find the fastest route between two stations with accessibility annotations.

    Args:
        graph: Station graph to search.
        from_id: Origin station id.
        to_id: Destination station id.
        require_accessible: Never pass through or arrive at an inaccessible station.
        avoid_stations: Station ids the route must not enter.
        realtime_times: Observed minutes per edge, used in place of static estimates.

    Returns:
        AccessibleRoute, or None if an endpoint is unknown or no path exists.
    """
    path = find_path(graph, from_id, to_id, require_accessible, avoid_stations, realtime_times)
    if path is None:
        return None
    return build_route(graph, path, realtime_times)
