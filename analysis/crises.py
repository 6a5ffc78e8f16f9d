"""
Historical crisis catalog.
Static, process-wide configuration - crash and trough dates per episode.
"""

from dataclasses import dataclass
from datetime import date
from types import MappingProxyType
from typing import List, Dict, Any, Mapping

from analysis.errors import InvalidCrisisError


@dataclass(frozen=True)
class CrisisDefinition:
    """A crash-to-trough episode used as an alignment template."""
    crisis_id: str
    name: str
    description: str
    crash_date: date
    bottom_date: date
    color: str

    def __post_init__(self):
        if self.crash_date >= self.bottom_date:
            raise ValueError(
                f"Crisis {self.crisis_id}: crash_date must precede bottom_date"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.crisis_id,
            'name': self.name,
            'description': self.description,
            'crash_date': self.crash_date.isoformat(),
            'bottom_date': self.bottom_date.isoformat(),
            'color': self.color,
        }


_CRISES = (
    CrisisDefinition('1929', '1929', 'Great Depression',
                     date(1929, 10, 1), date(1932, 6, 1), '#e74c3c'),
    CrisisDefinition('1962', '1962', 'Flash Crash',
                     date(1962, 5, 1), date(1962, 6, 1), '#9b59b6'),
    CrisisDefinition('1973', '1973', 'Oil Crisis / Stagflation',
                     date(1973, 1, 1), date(1974, 10, 1), '#e67e22'),
    CrisisDefinition('1980', '1980', 'Double-Dip Recession',
                     date(1980, 11, 1), date(1982, 8, 1), '#16a085'),
    CrisisDefinition('1987', '1987', 'Black Monday',
                     date(1987, 10, 1), date(1987, 12, 1), '#34495e'),
    CrisisDefinition('2001', '2001', 'Dot-com Bubble',
                     date(2000, 3, 1), date(2002, 10, 1), '#3498db'),
    CrisisDefinition('2008', '2008', 'Financial Crisis',
                     date(2008, 9, 1), date(2009, 3, 1), '#f39c12'),
)

CRISIS_CATALOG: Mapping[str, CrisisDefinition] = MappingProxyType(
    {crisis.crisis_id: crisis for crisis in _CRISES}
)


def get_crisis(crisis_id: str) -> CrisisDefinition:
    """
    Look up a crisis by identifier.

    Raises:
        InvalidCrisisError: If crisis_id is not in the catalog
    """
    crisis = CRISIS_CATALOG.get(str(crisis_id))
    if crisis is None:
        available = ', '.join(CRISIS_CATALOG.keys())
        raise InvalidCrisisError(f"Unknown crisis: {crisis_id}. Available: {available}")
    return crisis


def get_available_crises() -> List[Dict[str, str]]:
    """Catalog summary for populating a crisis picker."""
    return [
        {
            'id': crisis.crisis_id,
            'name': crisis.name,
            'description': crisis.description,
            'crash_date': crisis.crash_date.isoformat(),
            'bottom_date': crisis.bottom_date.isoformat(),
        }
        for crisis in CRISIS_CATALOG.values()
    ]
