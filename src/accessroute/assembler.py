"""Turn raw graph paths into annotated routes."""

from typing import List, Mapping, Optional, Tuple

from .models import (
    AccessibleRoute,
    BlockedStation,
    EdgeKey,
    GraphEdge,
    RouteSegment,
    StationGraph,
)

# (station id, edge used to reach it); the origin has no edge
PathStep = Tuple[str, Optional[GraphEdge]]


def edge_weight(edge: GraphEdge, realtime_times: Optional[Mapping[EdgeKey, float]] = None) -> float:
    """Live minutes for the edge if known, otherwise its static estimate."""
    if realtime_times:
        live = realtime_times.get(edge.key)
        if live is not None:
            return live
    return edge.estimated_minutes


def build_route(
    graph: StationGraph,
    path: List[PathStep],
    realtime_times: Optional[Mapping[EdgeKey, float]] = None,
) -> AccessibleRoute:
    """
    Build an AccessibleRoute from a path.

    A route stops being fully accessible at the first inaccessible station it
    arrives at; every such station is listed in blocked_stations with the
    reason of its blocking outage when known.
    """
    segments: List[RouteSegment] = []
    blocked: List[BlockedStation] = []
    total_minutes = 0.0
    transfer_count = 0

    for (from_id, _), (to_id, edge) in zip(path, path[1:]):
        if edge is None:
            continue
        from_node = graph.nodes[from_id]
        to_node = graph.nodes[to_id]

        if not to_node.is_accessible:
            reason = next((o.outage_reason for o in to_node.outages if o.blocks_access), None)
            blocked.append(BlockedStation(station_id=to_id, station_name=to_node.name, outage_reason=reason))

        if edge.is_transfer:
            transfer_count += 1

        minutes = edge_weight(edge, realtime_times)
        total_minutes += minutes

        segments.append(RouteSegment(
            from_station_id=from_id,
            from_station_name=from_node.name,
            to_station_id=to_id,
            to_station_name=to_node.name,
            line=edge.line,
            is_express=edge.is_express,
            minutes=round(minutes, 1),
            is_accessible=to_node.is_accessible,
            has_elevator_outage=not to_node.is_accessible,
            is_transfer=edge.is_transfer,
            is_realtime=bool(realtime_times) and realtime_times.get(edge.key) is not None,
        ))

    return AccessibleRoute(
        segments=segments,
        total_minutes=round(total_minutes, 1),
        is_fully_accessible=not blocked,
        blocked_stations=blocked,
        transfer_count=transfer_count,
    )
