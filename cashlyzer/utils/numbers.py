import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves going toward positive infinity."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))
