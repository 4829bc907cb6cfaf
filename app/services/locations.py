"""Airports and terminals the shuttle serves, with their coordinates"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Terminal:
    formatted_address: str
    latitude: float
    longitude: float
    place_ids: List[str] = field(default_factory=list)
    proximity_radius_km: float = 3.0
    locality: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None

    @property
    def place_id(self) -> Optional[str]:
        return self.place_ids[0] if self.place_ids else None


@dataclass(frozen=True)
class ResolvedLocation:
    label: str
    address: Optional[str]
    lat: Optional[float]
    lng: Optional[float]
    place_id: Optional[str]


LOCATION_DIRECTORY: Dict[str, Terminal] = {
    "Abbotsford International Airport (YXX)": Terminal(
        formatted_address="30440 Liberator Ave, Abbotsford, BC V2T 6H5, Canada",
        latitude=49.0252,
        longitude=-122.3601,
        place_ids=["ChIJuyXxKmZKhFQRXuVp7UwagU4", "ChIJHeMm52G1hVQR8vmdAEhovKQ"],
        proximity_radius_km=1,
        locality="Abbotsford",
        region="BC",
        country="CA",
    ),
    "Vancouver International Airport (YVR)": Terminal(
        formatted_address="3211 Grant McConachie Way, Richmond, BC V7B 0A4, Canada",
        latitude=49.1947,
        longitude=-123.1792,
        place_ids=["ChIJm6MnhjQLhlQRhIA0hqzMaLo"],
        proximity_radius_km=1,
        locality="Richmond",
        region="BC",
        country="CA",
    ),
    "Bellingham International Airport (BLI)": Terminal(
        formatted_address="4255 Mitchell Way, Bellingham, WA 98226, United States",
        latitude=48.7927,
        longitude=-122.5375,
        proximity_radius_km=1,
        locality="Bellingham",
        region="WA",
        country="US",
    ),
    "Horseshoe Bay Ferry Terminal in West Vancouver": Terminal(
        formatted_address="6750 Keith Rd, West Vancouver, BC V7W 2V1, Canada",
        latitude=49.3724,
        longitude=-123.2737,
        locality="West Vancouver",
        region="BC",
        country="CA",
    ),
    "Tsawwassen Ferry Terminal in Delta": Terminal(
        formatted_address="1 Ferry Causeway, Delta, BC V4M 4G6, Canada",
        latitude=49.0089,
        longitude=-123.1187,
        locality="Delta",
        region="BC",
        country="CA",
    ),
    "Canada Place Cruise Terminal in Vancouver": Terminal(
        formatted_address="999 Canada Pl, Vancouver, BC V6C 3T4, Canada",
        latitude=49.2888,
        longitude=-123.1113,
        place_ids=["ChIJh1duaoNxhlQRjXZyXbz3xdM"],
        locality="Vancouver",
        region="BC",
        country="CA",
    ),
    "King George Skytrain Station in Surrey": Terminal(
        formatted_address="9900 King George Blvd, Surrey, BC V3T 0K7, Canada",
        latitude=49.1829,
        longitude=-122.8448,
        locality="Surrey",
        region="BC",
        country="CA",
    ),
}


def get_terminal(label: Optional[str]) -> Optional[Terminal]:
    if not label:
        return None
    return LOCATION_DIRECTORY.get(label)


def _clean(value: Optional[str]) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def resolve_location_details(
    label: Optional[str],
    address: Optional[str] = None,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    place_id: Optional[str] = None,
) -> ResolvedLocation:
    """Fill gaps in a trip endpoint from the terminal directory; caller values win."""
    input_label = _clean(label)
    terminal = get_terminal(input_label)
    input_address = _clean(address)

    resolved_address = input_address or (terminal.formatted_address if terminal else None)
    resolved_lat = lat if lat is not None else (terminal.latitude if terminal else None)
    resolved_lng = lng if lng is not None else (terminal.longitude if terminal else None)
    resolved_place_id = _clean(place_id) or (terminal.place_id if terminal else None)

    return ResolvedLocation(
        label=input_label or resolved_address or "Location",
        address=resolved_address,
        lat=resolved_lat,
        lng=resolved_lng,
        place_id=resolved_place_id,
    )
