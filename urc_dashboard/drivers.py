"""
Driver records and car number lookup.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

NO_STATS_MESSAGE = "No specific stats available for this driver."

# Wire (sheet column) name -> DriverRecord attribute
FIELD_NAMES = {
    "carNumber": "car_number",
    "name": "name",
    "nickname": "nickname",
    "hometown": "hometown",
    "carOwner": "car_owner",
    "sponsors": "sponsors",
    "engineManufacture": "engine_manufacture",
    "chassisManufacture": "chassis_manufacture",
    "stats": "stats",
}


@dataclass(frozen=True)
class DriverRecord:
    """One row of a division's driver sheet."""
    car_number: str
    name: str = ""
    nickname: str = ""
    hometown: str = ""
    car_owner: str = ""
    sponsors: str = ""
    engine_manufacture: str = ""
    chassis_manufacture: str = ""
    stats: Optional[str] = None  # Free text, may be absent

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "DriverRecord":
        """
        Build a record from a payload row keyed by sheet column names.

        Unknown columns are ignored. Car numbers are stringified since the
        sheet hands back numbers for numeric cells.
        """
        values = {}
        for wire_name, attr in FIELD_NAMES.items():
            value = row.get(wire_name)
            if attr == "stats":
                values[attr] = None if value is None else str(value)
            else:
                values[attr] = "" if value is None else str(value)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        """Render back to sheet column names for the page."""
        return {wire_name: getattr(self, attr) for wire_name, attr in FIELD_NAMES.items()}


def find_driver(records: Iterable[DriverRecord], query: str) -> Optional[DriverRecord]:
    """
    Find the first driver whose car number matches the query.

    Comparison ignores case and surrounding whitespace in the query. An empty
    query never matches.

    Args:
        records: Driver records in fetch order.
        query: Car number as typed.

    Returns:
        First matching record, or None if not found.
    """
    wanted = query.strip().lower()
    if not wanted:
        return None
    for record in records:
        if record.car_number.lower() == wanted:
            return record
    return None
