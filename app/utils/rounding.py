import math

NICKEL = 0.05
# Absorbs float error so values already on a nickel boundary stay put.
NICKEL_EPSILON = 1e-8


def round_up_to_nickel(value: float) -> float:
    """Round up to the next $0.05, leaving exact nickel amounts unchanged.

    Non-finite input yields 0.
    """
    if value is None or not math.isfinite(value):
        return 0.0
    rounded = math.ceil((value - NICKEL_EPSILON) / NICKEL) * NICKEL
    return round(rounded, 2) + 0.0


def round_half_up(value: float) -> int:
    """Round to the nearest whole unit, halves going up (165.5 -> 166)."""
    return int(math.floor(value + 0.5))
