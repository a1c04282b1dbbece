"""Money / rounding helpers.

Centralized so the converter, the HTTP layer and the demo script use identical
rounding and formatting semantics.
"""

from __future__ import annotations
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

CENT = Decimal("0.01")


def to_decimal(value: object) -> Decimal:
    """Coerce str/int/float/Decimal into a finite Decimal.

    Floats go through ``str`` so 0.1 stays 0.1 instead of its binary expansion.
    """
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValueError(f"not a decimal number: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"not a finite number: {value!r}")
    return result


def _exact_precision(*values: Decimal) -> int:
    # Digits needed to hold the exact product of values, quantized to cents.
    needed = 4
    for v in values:
        t = v.as_tuple()
        needed += len(t.digits) + abs(t.exponent)  # type: ignore[arg-type]
    return needed


def round2(value: Decimal | float) -> Decimal:
    value = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _exact_precision(value))
        return value.quantize(CENT, rounding=ROUND_HALF_UP)


def multiply_round2(amount: Decimal, rate: Decimal) -> Decimal:
    """Exact ``amount * rate`` rounded half-up to cents, for operands of any size."""
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, _exact_precision(amount, rate))
        return (amount * rate).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(currency: str, amount: Decimal) -> str:
    # Fixed '.' decimal point and no grouping, whatever the locale.
    return f"{currency} {round2(amount):.2f}"
