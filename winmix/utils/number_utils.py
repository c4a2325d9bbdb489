from decimal import Decimal, ROUND_HALF_UP


def round_half_up(value: float, digits: int = 1) -> float:
    """Round half away from zero (2.25 -> 2.3, -2.25 -> -2.3)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def percentage(count: int, total: int, digits: int = 1) -> float:
    """Percentage of count over total, 0 when total is 0."""
    if total <= 0:
        return 0.0
    return round_half_up(count / total * 100, digits)


def safe_mean(values, default: float = 0.0) -> float:
    values = list(values)
    if not values:
        return default
    return sum(values) / len(values)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))
