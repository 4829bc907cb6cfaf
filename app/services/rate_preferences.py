from typing import List, Optional


def derive_preferred_rate_key(passenger_count: int, vehicle_selections: Optional[List[str]]) -> Optional[str]:
    """Map the dispatcher's vehicle pick to the rate bracket it is billed at."""
    if not vehicle_selections:
        return None

    primary = next(
        (value for value in vehicle_selections if isinstance(value, str) and value.strip()),
        None,
    )
    if primary is None:
        return None

    if passenger_count == 6 and primary == "chevyExpress":
        return "7v"
    if 8 <= passenger_count <= 11 and primary == "mercedesSprinter":
        return "8-11"
    if passenger_count >= 12 and primary == "freightlinerSprinter":
        return "12-14"
    return None
