"""Tests for LineTopology."""

import json
import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add src to path so we can import accessroute
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from accessroute.models import TopologyError
from accessroute.topology import LineTopology, base_station_id, get_line_group

LINES = {
    "1": {
        "name": "Broadway-7th Avenue Local",
        "color": "#EE352E",
        "textColor": "#FFFFFF",
        "stations": [
            {"id": "101", "name": "Van Cortlandt Park-242 St", "type": "terminal", "lat": 40.889, "lon": -73.898},
            {"id": "127", "name": "Times Sq-42 St", "express": True, "transfer": ["725", "R16"]},
            {"id": "142", "name": "South Ferry", "type": "terminal", "lat": 40.702, "lon": -74.013},
        ],
    },
    "7": {
        "name": "Flushing Local",
        "stations": [
            {"id": "725", "name": "Times Sq-42 St", "lat": 40.755, "lon": -73.987},
            {"id": "127", "name": "Times Sq-42 St"},
        ],
    },
}


class TestLineTopology(unittest.TestCase):
    """Test loading and querying line topology."""

    def setUp(self):
        self.topology = LineTopology.from_dict(LINES)

    def test_load_lines_in_order(self):
        """Test that lines and their stations keep their order."""
        self.assertEqual(self.topology.line_ids(), ["1", "7"])
        stations = self.topology.get_line_stations("1")
        self.assertEqual([s.id for s in stations], ["101", "127", "142"])
        self.assertTrue(stations[0].is_terminal)
        self.assertTrue(stations[1].is_express)
        self.assertEqual(stations[1].transfers, ("725", "R16"))

    def test_line_attributes_and_defaults(self):
        """Test line colors and names, with defaults for missing values."""
        self.assertEqual(self.topology.get_line_color("1"), "#EE352E")
        self.assertEqual(self.topology.get_line_color("7"), "#808183")
        self.assertEqual(self.topology.get_line_text_color("7"), "#FFFFFF")
        self.assertEqual(self.topology.get_line_name("1"), "Broadway-7th Avenue Local")
        self.assertEqual(self.topology.get_line_name("Z"), "Z")
        self.assertEqual(self.topology.get_line_stations("Z"), [])

    def test_get_line_not_found(self):
        """Test error handling for an unknown line."""
        with self.assertRaises(ValueError):
            self.topology.get_line("Z")

    def test_terminals(self):
        """Test terminals are the first and last stations."""
        north, south = self.topology.get_line_terminals("1")
        self.assertEqual(north.id, "101")
        self.assertEqual(south.id, "142")
        self.assertEqual(self.topology.get_line_terminals("Z"), (None, None))

    def test_platform_ids_resolve_to_station(self):
        """Test that platform stop ids match their parent station."""
        self.assertEqual(self.topology.find_station_index("1", "127N"), 1)
        self.assertEqual(self.topology.find_station_index("1", "999"), -1)
        self.assertTrue(self.topology.is_station_on_line("7", "725S"))
        self.assertEqual(self.topology.get_lines_at_station("127S"), ["1", "7"])
        self.assertEqual(self.topology.get_station_name("142N"), "South Ferry")
        self.assertIsNone(self.topology.get_station_name("999"))

    def test_base_station_id(self):
        """Test only digit-terminated platform ids lose their suffix."""
        self.assertEqual(base_station_id("A15N"), "A15")
        self.assertEqual(base_station_id("127S"), "127")
        self.assertEqual(base_station_id("127"), "127")
        self.assertEqual(base_station_id("N"), "N")

    def test_merge_line_stations(self):
        """Test merging keeps the first line's order and appends new stations."""
        merged = self.topology.merge_line_stations(["7", "1"])
        self.assertEqual([s.id for s in merged], ["725", "127", "101", "142"])
        self.assertEqual(self.topology.merge_line_stations([]), [])

    def test_line_group(self):
        """Test line group lookup."""
        self.assertEqual(get_line_group("7"), "purple")
        self.assertEqual(get_line_group("Q"), "yellow")
        self.assertIsNone(get_line_group("X"))

    def test_coordinates_from_line_data(self):
        """Test that coordinates in line data are indexed."""
        self.assertEqual(self.topology.get_coordinates("725"), (40.755, -73.987))
        self.assertIsNone(self.topology.get_coordinates("127"))

    def test_load_stops_csv(self):
        """Test coordinates are filled in from stops.txt."""
        csv_data = """stop_id,stop_name,stop_lat,stop_lon,location_type,parent_station
127,Times Sq-42 St,40.75529,-73.987495,1,
127N,Times Sq-42 St,40.75600,-73.987000,,127
A27S,42 St-Port Authority Bus Terminal,40.757308,-73.989735,,A27
"""
        self.topology._load_stops(csv_data)

        self.assertEqual(self.topology.get_coordinates("127"), (40.75529, -73.987495))
        self.assertEqual(self.topology.get_coordinates("127N"), (40.75529, -73.987495))
        self.assertEqual(self.topology.get_coordinates("A27"), (40.757308, -73.989735))

    def test_load_from_file(self):
        """Test loading topology from a JSON file."""
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "line-stations.json")
            with open(path, "w", encoding="utf-8") as f:
                json.dump(LINES, f)

            topology = LineTopology()
            topology.load_from_file(path)
        self.assertEqual(topology.line_ids(), ["1", "7"])

    def test_clear(self):
        """Test clearing topology data."""
        self.topology.clear()
        self.assertEqual(self.topology.line_ids(), [])
        self.assertIsNone(self.topology.get_coordinates("725"))


class TestTopologyValidation(unittest.TestCase):
    """Test that malformed topology is rejected at load time."""

    def test_rejects_non_mapping(self):
        with self.assertRaises(TopologyError):
            LineTopology.from_dict([])

    def test_rejects_missing_stations_list(self):
        with self.assertRaises(TopologyError):
            LineTopology.from_dict({"1": {"name": "One"}})

    def test_rejects_station_without_id(self):
        with self.assertRaises(TopologyError):
            LineTopology.from_dict({"1": {"stations": [{"name": "Nowhere"}]}})

    def test_rejects_station_without_name(self):
        with self.assertRaises(TopologyError):
            LineTopology.from_dict({"1": {"stations": [{"id": "101", "name": "  "}]}})

    def test_rejects_bad_coordinates(self):
        with self.assertRaises(TopologyError):
            LineTopology.from_dict({"1": {"stations": [{"id": "101", "name": "A", "lat": "north"}]}})

    def test_rejects_bad_transfer_hints(self):
        with self.assertRaises(TopologyError):
            LineTopology.from_dict({"1": {"stations": [{"id": "101", "name": "A", "transfer": "725"}]}})

    def test_topology_error_is_value_error(self):
        """Test callers catching ValueError also catch TopologyError."""
        with self.assertRaises(ValueError):
            LineTopology.from_dict({"1": "not a line"})

    def test_invalid_json_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "broken.json")
            with open(path, "w", encoding="utf-8") as f:
                f.write("{not json")
            with self.assertRaises(TopologyError):
                LineTopology().load_from_file(path)


if __name__ == "__main__":
    unittest.main()
