import math
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Sequence


def format_number(value: float) -> str:
    """
    Render a number the way the dashboard prints it: whole values without a trailing ``.0``
    (``6`` rather than ``6.0``), everything else with the shortest round-tripping digits.

    Exponent notation is only used below 1e-6 and from 1e21 up, written ``1e-7`` / ``1e+21``.
    """
    value = float(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    mantissa, sep, exponent = text.partition("e")
    if not sep:
        return text
    exp = int(exponent)
    if -7 < exp < 21:
        return format(Decimal(text), "f")
    return f"{mantissa}e{'+' if exp > 0 else '-'}{abs(exp)}"


def format_fixed(value: float, digits: int = 0) -> str:
    """Format with a fixed number of decimals, rounding the exact binary value half away from zero."""
    quantum = Decimal(1).scaleb(-digits)
    return str(Decimal(float(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def split_cents(amounts: Sequence[float], total: float) -> List[float]:
    """
    Round amounts to cents so that they add up to ``total`` rounded to cents.

    Every amount is first rounded down; the cents left over go one at a time to the amounts with
    the largest dropped fractions (earlier entries win ties).
    """
    target = round(total * 100)
    cents = [math.floor(a * 100) for a in amounts]
    leftover = target - sum(cents)
    by_fraction = sorted(range(len(amounts)), key=lambda i: (-(amounts[i] * 100 - cents[i]), i))
    for i in by_fraction[:max(0, leftover)]:
        cents[i] += 1
    return [c / 100 for c in cents]
