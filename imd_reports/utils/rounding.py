import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def round_one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def percentage(part: int, whole: int) -> int:
    """Rounded integer percentage, 0 when whole is 0."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def mean(values) -> float:
    values = list(values)
    if not values:
        return 0
    return sum(values) / len(values)
