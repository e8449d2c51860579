"""
Helpers para montos monetarios
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Union[Decimal, float, int, str, None]) -> Decimal:
    """Convierte a Decimal redondeado a centavos (ROUND_HALF_UP)."""
    if value is None or value == "":
        return ZERO
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def money_sum(values: Iterable) -> Decimal:
    return to_money(sum((Decimal(str(v)) for v in values if v is not None), ZERO))
