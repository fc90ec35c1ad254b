"""Elevator/escalator outage records and station accessibility lookup."""

import logging
import re
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import ELEVATOR, ESCALATOR, EquipmentOutage

logger = logging.getLogger(__name__)

# MTA outage feed date format, e.g. "11/28/2024 10:15:00 AM"
MTA_DATE_FORMAT = "%m/%d/%Y %I:%M:%S %p"

_ABBREVIATIONS = [
    (re.compile(r"\bst\b"), "street"),
    (re.compile(r"\bav\b"), "avenue"),
    (re.compile(r"\brd\b"), "road"),
    (re.compile(r"\bblvd\b"), "boulevard"),
]


def normalize_station_name(name: str) -> str:
    """
    Normalize a station name so feed names match topology names.

    "Times Sq-42 St" and "times sq – 42 st" both become "times sq-42 street".
    """
    normalized = re.sub(r"\s+", " ", name.lower())
    normalized = re.sub(r"\s*[-–—]\s*", "-", normalized)
    for pattern, replacement in _ABBREVIATIONS:
        normalized = pattern.sub(replacement, normalized)
    return normalized.strip()


def parse_equipment_type(type_code: str) -> str:
    """Map MTA equipment codes ("EL", "ES") to ELEVATOR/ESCALATOR."""
    upper = type_code.upper()
    if upper == "ES" or "ESCALATOR" in upper:
        return ESCALATOR
    return ELEVATOR


def parse_train_lines(train_str: Optional[str]) -> List[str]:
    """Split "A/C/E" or "F, G" into line ids."""
    if not train_str:
        return []
    lines = [part.strip().upper() for part in re.split(r"[,/]", train_str)]
    return [line for line in lines if 0 < len(line) <= 4]


def parse_date(date_str: Optional[str]) -> Optional[datetime]:
    """Parse an MTA feed timestamp, returning None when absent or unparseable."""
    if not date_str:
        return None
    for parser in (lambda s: datetime.strptime(s, MTA_DATE_FORMAT), datetime.fromisoformat):
        try:
            return parser(date_str.strip())
        except ValueError:
            continue
    logger.debug(f"Unparseable outage date: {date_str!r}")
    return None


def parse_outage(record: Dict) -> EquipmentOutage:
    """
    Convert one MTA outage feed item into an EquipmentOutage.

    Raises:
        ValueError: If the record lacks a station, equipment id or equipment type.
    """
    if not isinstance(record, dict):
        raise ValueError("Outage record must be an object")

    station = record.get("station")
    equipment = record.get("equipment")
    equipment_type = record.get("equipmenttype")
    for field_name, value in (("station", station), ("equipment", equipment), ("equipmenttype", equipment_type)):
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Outage record is missing {field_name}")

    return EquipmentOutage(
        equipment_id=equipment,
        station_name=station,
        equipment_type=parse_equipment_type(equipment_type),
        ada_compliant=record.get("ADA") == "Y",
        outage_reason=record.get("reason") or None,
        is_active=record.get("isupcomingoutage") != "Y",
        borough=record.get("borough") or None,
        serving=record.get("serving") or None,
        train_lines=tuple(parse_train_lines(record.get("trainno"))),
        outage_start=parse_date(record.get("outagedate")),
        estimated_return=parse_date(record.get("estimatedreturntoservice")),
    )


def parse_outages(records: Iterable[Dict]) -> List[EquipmentOutage]:
    """Parse outage feed items, skipping malformed ones."""
    outages: List[EquipmentOutage] = []
    rejected = 0

    for record in records:
        try:
            outages.append(parse_outage(record))
        except ValueError as e:
            rejected += 1
            logger.warning(f"Rejected outage record: {e}")

    logger.debug(f"Parsed {len(outages)} outages ({rejected} rejected)")
    return outages


class OutageIndex:
    """Outages grouped by normalized station name."""

    def __init__(self, outages: Iterable[EquipmentOutage] = ()):
        self._by_station: Dict[str, List[EquipmentOutage]] = {}
        for outage in outages:
            key = normalize_station_name(outage.station_name)
            self._by_station.setdefault(key, []).append(outage)

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_station.values())

    def outages_for(self, station_name: str) -> List[EquipmentOutage]:
        return list(self._by_station.get(normalize_station_name(station_name), []))

    def blocking_outage(self, station_name: str) -> Optional[EquipmentOutage]:
        """First outage that makes the station inaccessible, if any."""
        for outage in self._by_station.get(normalize_station_name(station_name), []):
            if outage.blocks_access:
                return outage
        return None

    def is_accessible(self, station_name: str) -> bool:
        return self.blocking_outage(station_name) is None


def filter_outages(
    outages: Iterable[EquipmentOutage],
    station_name: Optional[str] = None,
    line: Optional[str] = None,
    equipment_type: Optional[str] = None,
    ada_only: bool = False,
) -> List[EquipmentOutage]:
    """
    Filter outages by station (substring), line, equipment type or ADA status.
    """
    filtered = list(outages)

    if station_name:
        term = station_name.lower()
        filtered = [o for o in filtered if term in o.station_name.lower()]
    if line:
        filtered = [o for o in filtered if line.upper() in o.train_lines]
    if equipment_type:
        filtered = [o for o in filtered if o.equipment_type == equipment_type]
    if ada_only:
        filtered = [o for o in filtered if o.ada_compliant]

    return filtered


def summarize_outages(outages: Iterable[EquipmentOutage]) -> Dict:
    """Counts of outages in total, per equipment type, ADA and per borough."""
    summary = {
        "total_outages": 0,
        "elevator_outages": 0,
        "escalator_outages": 0,
        "ada_outages": 0,
        "by_borough": {},
    }

    for outage in outages:
        summary["total_outages"] += 1
        if outage.equipment_type == ELEVATOR:
            summary["elevator_outages"] += 1
        elif outage.equipment_type == ESCALATOR:
            summary["escalator_outages"] += 1
        if outage.ada_compliant:
            summary["ada_outages"] += 1
        borough = outage.borough or "Unknown"
        summary["by_borough"][borough] = summary["by_borough"].get(borough, 0) + 1

    return summary
