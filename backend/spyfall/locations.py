"""Location catalog for Spyfall rounds.

Places are grouped by category for the reference card clients show; the game
itself only cares about the flat set of names.
"""

import secrets
from typing import Dict, List, Tuple

LOCATION_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    'Leisure': (
        'Beach', 'Casino', 'Circus', 'Day Spa', 'Movie Theater', 'Night Club',
        'Park', 'Stadium', 'Theater', 'Vineyard', 'Zoo',
    ),
    'Culture & Education': (
        'Art Gallery', 'Cathedral', 'Library', 'Museum', 'School', 'University',
    ),
    'Travel': (
        'Airport', 'Cruise Ship', 'Hotel', 'Passenger Plane', 'Pirate Ship',
        'Space Station', 'Subway', 'Train Station',
    ),
    'Public Service': (
        'Embassy', 'Hospital', 'Military Base', 'Police Station', 'Polar Station',
        'Prison', 'Retirement Home',
    ),
    'Business': (
        'Bank', 'Corporate Party', 'Factory', 'Gas Station', 'Grocery Store',
        'Office', 'Restaurant', 'Shopping Mall',
    ),
}

LOCATIONS: Tuple[str, ...] = tuple(
    name for names in LOCATION_CATEGORIES.values() for name in names
)
_LOCATION_SET = frozenset(LOCATIONS)


def sorted_locations() -> List[str]:
    return sorted(LOCATIONS)


def is_location(name: str) -> bool:
    return name in _LOCATION_SET


def random_location() -> str:
    """Pick a location uniformly at random from the whole catalog."""
    return LOCATIONS[secrets.randbelow(len(LOCATIONS))]


def catalog_to_dict() -> Dict[str, List[str]]:
    return {category: sorted(names) for category, names in LOCATION_CATEGORIES.items()}
