"""Example usage of RoutePlanner."""

import logging
import sys
from pathlib import Path

# Add src to path so we can import accessroute
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from accessroute import LineTopology, RoutePlanner, parse_outages
from accessroute.graph import find_station_by_name

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# A few Midtown and downtown stations on three lines
LINES = {
    "1": {
        "name": "Broadway-7th Avenue Local",
        "color": "#EE352E",
        "stations": [
            {"id": "120", "name": "96 St", "lat": 40.793919, "lon": -73.972323},
            {"id": "125", "name": "59 St-Columbus Circle", "lat": 40.768247, "lon": -73.981929},
            {"id": "127", "name": "Times Sq-42 St", "express": True, "lat": 40.75529, "lon": -73.987495},
            {"id": "128", "name": "34 St-Penn Station", "express": True, "lat": 40.750373, "lon": -73.991057},
            {"id": "132", "name": "14 St", "express": True, "lat": 40.737826, "lon": -74.000201},
        ],
    },
    "A": {
        "name": "8th Avenue Express",
        "color": "#0039A6",
        "stations": [
            {"id": "A24", "name": "59 St-Columbus Circle", "express": True, "lat": 40.768296, "lon": -73.981736},
            {"id": "A27", "name": "42 St-Port Authority Bus Terminal", "lat": 40.757308, "lon": -73.989735},
            {"id": "A28", "name": "34 St-Penn Station", "lat": 40.752287, "lon": -73.993391},
            {"id": "A31", "name": "14 St", "express": True, "lat": 40.740893, "lon": -74.00169},
        ],
    },
    "7": {
        "name": "Flushing Local",
        "color": "#B933AD",
        "stations": [
            {"id": "725", "name": "Times Sq-42 St", "lat": 40.755477, "lon": -73.987691},
            {"id": "724", "name": "5 Av", "lat": 40.753821, "lon": -73.981963},
            {"id": "723", "name": "Grand Central-42 St", "lat": 40.751431, "lon": -73.976041},
        ],
    },
}

# Items shaped like the MTA elevator and escalator outage feed
OUTAGE_FEED = [
    {
        "station": "Times Sq-42 St",
        "borough": "M",
        "trainno": "1/2/3/7",
        "equipment": "EL236",
        "equipmenttype": "EL",
        "serving": "Mezzanine to 1/2/3 platform",
        "ADA": "Y",
        "outagedate": "11/28/2024 10:15:00 AM",
        "estimatedreturntoservice": "11/29/2024 06:00:00 PM",
        "reason": "Repair",
        "isupcomingoutage": "N",
    },
    {
        "station": "14 St",
        "equipment": "ES101",
        "equipmenttype": "ES",
        "ADA": "N",
        "reason": "Preventive Maintenance",
        "isupcomingoutage": "N",
    },
]


def print_route(label: str, route):
    """Print one route, segment by segment."""
    status = "step-free" if route.is_fully_accessible else "NOT step-free"
    print(f"\n{label}: {route.total_minutes} min, {route.transfer_count} transfer(s), {status}")
    for segment in route.segments:
        line = "walk" if segment.is_transfer else f"Line {segment.line}"
        flag = "" if segment.is_accessible else "  [elevator out]"
        print(f"  {segment.from_station_name} → {segment.to_station_name} "
              f"({line}, {segment.minutes} min){flag}")
    for blocked in route.blocked_stations:
        print(f"  ! {blocked.station_name}: {blocked.outage_reason or 'elevator outage'}")


def plan_trip(from_name: str, to_name: str):
    """
    Plan a trip between two stations by name and print the result.

    Args:
        from_name: Origin station name (e.g., "96 St")
        to_name: Destination station name (e.g., "Grand Central")
    """
    print(f"\n{'='*70}")
    print(f"Planning: {from_name} → {to_name}")
    print(f"{'='*70}")

    topology = LineTopology.from_dict(LINES)
    planner = RoutePlanner(topology)
    outages = parse_outages(OUTAGE_FEED)

    graph = planner.get_graph(outages)
    origin = find_station_by_name(graph, from_name)
    destination = find_station_by_name(graph, to_name)
    if origin is None or destination is None:
        missing = from_name if origin is None else to_name
        print(f"Station not found: {missing}")
        print("Known stations: " + ", ".join(sorted({n.name for n in graph.nodes.values()})))
        sys.exit(1)

    result = planner.find_routes(origin.id, destination.id, outages)

    if result.primary:
        print_route("FASTEST", result.primary)
    for i, route in enumerate(result.alternatives, 1):
        print_route(f"ALTERNATIVE {i}", route)
    for warning in result.warnings:
        print(f"\nWARNING: {warning}")

    print("\n" + "=" * 70 + "\n")


if __name__ == "__main__":
    if len(sys.argv) == 3:
        plan_trip(sys.argv[1], sys.argv[2])
    else:
        plan_trip("96 St", "Grand Central-42 St")
