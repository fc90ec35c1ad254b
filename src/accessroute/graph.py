"""Station graph construction with outage-aware accessibility."""

import logging
import threading
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .estimator import estimate_travel_minutes
from .models import (
    EquipmentOutage,
    GraphEdge,
    LineStation,
    StationGraph,
    StationNode,
    TopologyError,
    TRANSFER_LINE,
)
from .outages import OutageIndex, normalize_station_name
from .topology import LineTopology

logger = logging.getLogger(__name__)

# Minutes to walk between platforms of two complexes sharing a name
TRANSFER_PENALTY_MINUTES = 4.0

# Station equipment metadata is not loaded, so stations are assumed to have
# an elevator unless proven otherwise. This is a heuristic, not a fact.
ASSUME_ELEVATOR_WITHOUT_DATA = True


def _station_coordinates(topology: LineTopology, station: LineStation, line_id: str):
    # The topology index already prefers stops.txt parents over line data
    coordinates = topology.get_coordinates(station.id)
    if coordinates is None and station.latitude is not None and station.longitude is not None:
        coordinates = (station.latitude, station.longitude)
    if coordinates is None:
        logger.error(f"Station {station.id} on line {line_id} has no coordinates")
        raise TopologyError(f"Station {station.id} ({station.name}) on line {line_id} has no coordinates")
    return coordinates


def _make_node(
    topology: LineTopology,
    station: LineStation,
    line_id: str,
    outage_index: OutageIndex,
) -> dict:
    outages = outage_index.outages_for(station.name)
    latitude, longitude = _station_coordinates(topology, station, line_id)
    return {
        "id": station.id,
        "name": station.name,
        "lines": [],
        "has_elevator": any(o.is_elevator for o in outages) or ASSUME_ELEVATOR_WITHOUT_DATA,
        "is_accessible": not any(o.blocks_access for o in outages),
        "outages": tuple(outages),
        "express_stops": {},
        "latitude": latitude,
        "longitude": longitude,
    }


def build_station_graph(
    topology: LineTopology,
    outages: Iterable[EquipmentOutage] = (),
) -> StationGraph:
    """
    Build a routing graph from line topology and the current outages.

    Each consecutive pair of stations on a line gets a forward and a backward
    edge of equal weight. Stations with different ids but the same normalized
    name (multi-complex stations) are linked by transfer edges.

    Raises:
        TopologyError: If a station's coordinates cannot be resolved.
    """
    outage_index = OutageIndex(outages)
    node_fields: Dict[str, dict] = {}
    adjacency: Dict[str, List[GraphEdge]] = {}
    ids_by_name: Dict[str, List[str]] = {}

    for line_id in topology.line_ids():
        stations = topology.get_line_stations(line_id)

        for i, station in enumerate(stations):
            fields = node_fields.get(station.id)
            if fields is None:
                fields = _make_node(topology, station, line_id, outage_index)
                node_fields[station.id] = fields
                adjacency.setdefault(station.id, [])

            if line_id not in fields["lines"]:
                fields["lines"].append(line_id)
            if station.is_express:
                fields["express_stops"][line_id] = True

            same_name = ids_by_name.setdefault(normalize_station_name(station.name), [])
            if station.id not in same_name:
                same_name.append(station.id)

            if i == len(stations) - 1:
                continue

            next_station = stations[i + 1]
            if next_station.id == station.id:
                continue
            is_express = station.is_express or next_station.is_express
            lat1, lon1 = fields["latitude"], fields["longitude"]
            lat2, lon2 = _station_coordinates(topology, next_station, line_id)
            minutes = estimate_travel_minutes(lat1, lon1, lat2, lon2, is_express)

            adjacency[station.id].append(GraphEdge(
                from_id=station.id,
                to_id=next_station.id,
                line=line_id,
                is_express=is_express,
                estimated_minutes=minutes,
            ))
            adjacency.setdefault(next_station.id, []).append(GraphEdge(
                from_id=next_station.id,
                to_id=station.id,
                line=line_id,
                is_express=is_express,
                estimated_minutes=minutes,
            ))

    for station_ids in ids_by_name.values():
        for i, station_a in enumerate(station_ids):
            for station_b in station_ids[i + 1:]:
                for from_id, to_id in ((station_a, station_b), (station_b, station_a)):
                    adjacency[from_id].append(GraphEdge(
                        from_id=from_id,
                        to_id=to_id,
                        line=TRANSFER_LINE,
                        is_express=False,
                        estimated_minutes=TRANSFER_PENALTY_MINUTES,
                        is_transfer=True,
                    ))

    nodes = {}
    for station_id, fields in node_fields.items():
        fields["lines"] = tuple(fields["lines"])
        nodes[station_id] = StationNode(**fields)

    inaccessible = sum(1 for n in nodes.values() if not n.is_accessible)
    logger.info(
        f"Built station graph: {len(nodes)} stations, "
        f"{sum(len(e) for e in adjacency.values())} edges, {inaccessible} inaccessible"
    )
    return StationGraph(nodes=nodes, adjacency=adjacency)


class GraphBuilder:
    """
    Memoizes the station graph for one topology.

    The cached graph is reused while the outage set is unchanged. A different
    outage set builds a new graph and swaps it in; graphs already handed out
    are never modified.
    """

    def __init__(self, topology: LineTopology):
        self.topology = topology
        self._lock = threading.Lock()
        # (outage snapshot, graph), replaced as a single reference
        self._cached: Optional[Tuple[FrozenSet[EquipmentOutage], StationGraph]] = None
        self.build_count = 0

    @property
    def graph(self) -> Optional[StationGraph]:
        """The cached graph, if one has been built."""
        cached = self._cached
        return cached[1] if cached else None

    def get_graph(self, outages: Iterable[EquipmentOutage] = ()) -> StationGraph:
        """Return a graph for these outages, rebuilding only if they changed."""
        outages = list(outages)
        snapshot = frozenset(outages)

        cached = self._cached
        if cached is not None and cached[0] == snapshot:
            return cached[1]

        with self._lock:
            # Another caller may have rebuilt while we waited
            cached = self._cached
            if cached is not None and cached[0] == snapshot:
                return cached[1]

            logger.info(f"Rebuilding station graph for {len(snapshot)} outages")
            graph = build_station_graph(self.topology, outages)
            self._cached = (snapshot, graph)
            self.build_count += 1
            return graph

    def clear(self) -> None:
        """Drop the cached graph."""
        with self._lock:
            self._cached = None


def find_station_by_name(graph: StationGraph, name: str) -> Optional[StationNode]:
    """Find a station by exact normalized name, then by substring."""
    normalized = normalize_station_name(name)

    for node in graph.nodes.values():
        if normalize_station_name(node.name) == normalized:
            return node
    for node in graph.nodes.values():
        if normalized in normalize_station_name(node.name):
            return node
    return None


def get_station_ids_by_name(graph: StationGraph, name: str) -> List[str]:
    """All station ids sharing a normalized name (multi-complex stations)."""
    normalized = normalize_station_name(name)
    return [n.id for n in graph.nodes.values() if normalize_station_name(n.name) == normalized]
