"""Accessible route planning with ranked alternatives."""

import logging
from typing import Iterable, List, Mapping, Optional, Tuple

from .graph import GraphBuilder
from .models import AccessibleRoute, EdgeKey, EquipmentOutage, RouteResult, StationGraph
from .realtime import TravelTimeCache
from .solver import find_shortest_path
from .topology import LineTopology

logger = logging.getLogger(__name__)

DEFAULT_MAX_ALTERNATIVES = 3

# Detours slower than this multiple of the primary route are discarded
MAX_DETOUR_RATIO = 1.5

NO_ROUTE_WARNING = "No route found between these stations"
NO_ACCESSIBLE_ROUTE_WARNING = "No fully accessible route available between these stations"


def rank_routes(routes: Iterable[AccessibleRoute]) -> List[AccessibleRoute]:
    """Accessible routes first, then fastest first."""
    return sorted(routes, key=lambda r: (not r.is_fully_accessible, r.total_minutes))


def find_alternatives(
    graph: StationGraph,
    primary: AccessibleRoute,
    from_id: str,
    to_id: str,
    max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    realtime_times: Optional[Mapping[EdgeKey, float]] = None,
) -> Tuple[List[AccessibleRoute], List[str]]:
    """
    Find alternatives to a primary route.

    If the primary is not fully accessible, the fastest accessible route is
    tried first. A structurally different route is then sought by avoiding
    the primary's intermediate stations; it is kept if it is no slower than
    MAX_DETOUR_RATIO times the primary and its line sequence is new.

    Returns:
        (ranked alternatives capped at max_alternatives, warnings)
    """
    alternatives: List[AccessibleRoute] = []
    warnings: List[str] = []

    if not primary.is_fully_accessible:
        accessible = find_shortest_path(
            graph, from_id, to_id, require_accessible=True, realtime_times=realtime_times
        )
        if accessible:
            alternatives.append(accessible)
        else:
            logger.info(f"No accessible route from {from_id} to {to_id}")
            warnings.append(NO_ACCESSIBLE_ROUTE_WARNING)

    intermediate = {s for s in primary.station_ids if s not in (from_id, to_id)}
    if intermediate and len(alternatives) < max_alternatives:
        detour = find_shortest_path(
            graph, from_id, to_id, avoid_stations=intermediate, realtime_times=realtime_times
        )
        if detour and detour.total_minutes <= primary.total_minutes * MAX_DETOUR_RATIO:
            seen = {primary.line_signature} | {a.line_signature for a in alternatives}
            if detour.line_signature not in seen:
                alternatives.append(detour)
            else:
                logger.debug(f"Discarded duplicate detour {detour.line_signature}")

    return rank_routes(alternatives)[:max_alternatives], warnings


class RoutePlanner:
    """
    Plans accessible routes on one subway topology.

    Holds the memoized station graph and the live travel-time cache, both of
    which may be shared between threads.
    """

    def __init__(
        self,
        topology: LineTopology,
        graph_builder: Optional[GraphBuilder] = None,
        travel_times: Optional[TravelTimeCache] = None,
        max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    ):
        """
        Initialize the planner.

        Args:
            topology: Loaded line topology.
            graph_builder: Graph cache to use. A new one is created if omitted.
            travel_times: Live travel-time cache. A new, empty one is created if omitted.
            max_alternatives: Default cap on alternatives per query.
        """
        self.topology = topology
        self.graph_builder = graph_builder or GraphBuilder(topology)
        self.travel_times = travel_times or TravelTimeCache()
        self.max_alternatives = max_alternatives

    def get_graph(self, outages: Iterable[EquipmentOutage] = ()) -> StationGraph:
        return self.graph_builder.get_graph(outages)

    def find_routes(
        self,
        from_id: str,
        to_id: str,
        outages: Iterable[EquipmentOutage] = (),
        max_alternatives: Optional[int] = None,
        realtime_times: Optional[Mapping[EdgeKey, float]] = None,
        require_accessible: bool = False,
    ) -> RouteResult:
        """
        Find the fastest route between two stations and its alternatives.

        Args:
            from_id: Origin station id.
            to_id: Destination station id.
            outages: Current equipment outages.
            max_alternatives: Cap on alternatives; defaults to the planner's setting.
            realtime_times: Observed minutes per edge. Defaults to the fresh
                            entries of the planner's travel-time cache.
            require_accessible: Only return fully accessible routes. The best
                                accessible alternative becomes the primary.

        Returns:
            RouteResult. primary is None when no route exists; warnings explain why.
        """
        if max_alternatives is None:
            max_alternatives = self.max_alternatives
        if realtime_times is None:
            realtime_times = self.travel_times.snapshot()

        graph = self.get_graph(outages)

        for station_id in (from_id, to_id):
            if station_id not in graph.nodes:
                logger.warning(f"Unknown station {station_id}")
                return RouteResult(primary=None, alternatives=[], warnings=[f"Unknown station: {station_id}"])

        primary = find_shortest_path(graph, from_id, to_id, realtime_times=realtime_times)
        if primary is None:
            return RouteResult(primary=None, alternatives=[], warnings=[NO_ROUTE_WARNING])

        # One extra slot so a promoted accessible route survives the cap
        cap = max_alternatives + 1 if require_accessible else max_alternatives
        alternatives, warnings = find_alternatives(
            graph, primary, from_id, to_id, cap, realtime_times
        )
        logger.debug(
            f"Route {from_id} -> {to_id}: {primary.total_minutes} min, "
            f"{len(alternatives)} alternatives"
        )

        if require_accessible:
            primary, alternatives = self._accessible_only(primary, alternatives)
            alternatives = alternatives[:max_alternatives]
            if primary is None and NO_ACCESSIBLE_ROUTE_WARNING not in warnings:
                warnings.append(NO_ACCESSIBLE_ROUTE_WARNING)

        return RouteResult(primary=primary, alternatives=alternatives, warnings=warnings)

    @staticmethod
    def _accessible_only(
        primary: AccessibleRoute,
        alternatives: List[AccessibleRoute],
    ) -> Tuple[Optional[AccessibleRoute], List[AccessibleRoute]]:
        """Promote the best accessible alternative and drop inaccessible ones."""
        accessible = [a for a in alternatives if a.is_fully_accessible]
        if primary.is_fully_accessible:
            return primary, accessible
        if not accessible:
            return None, []
        return accessible[0], accessible[1:]


def find_routes(
    topology: LineTopology,
    from_id: str,
    to_id: str,
    outages: Iterable[EquipmentOutage] = (),
    max_alternatives: int = DEFAULT_MAX_ALTERNATIVES,
    realtime_times: Optional[Mapping[EdgeKey, float]] = None,
) -> RouteResult:
    """One-off route query; builds a throwaway planner with no live data."""
    planner = RoutePlanner(topology)
    return planner.find_routes(
        from_id,
        to_id,
        outages,
        max_alternatives=max_alternatives,
        realtime_times=realtime_times or {},
    )
