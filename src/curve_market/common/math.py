from decimal import Decimal, ROUND_DOWN, localcontext

from curve_market.common.exceptions import InvalidInput


UNIT_DECIMALS = 18
UNIT_SCALE = 10 ** UNIT_DECIMALS


def to_base_units(amount: Decimal, decimals: int = UNIT_DECIMALS) -> int:
    """Whole units (e.g. 1.5 tokens) to smallest units, truncating anything below one base unit."""
    amount = Decimal(amount)
    if not amount.is_finite():
        raise InvalidInput(f"Amount must be a finite number, got {amount}.", context={"amount": str(amount)})

    _, digits, exponent = amount.as_tuple()
    with localcontext() as ctx:
        # wide enough that scaling and truncation never round
        ctx.prec = len(digits) + abs(exponent) + decimals + 1
        return int(amount.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def mul_div(a: int, b: int, denominator: int) -> int:
    """Floor of a * b / denominator, computed on integers only."""
    if denominator == 0:
        raise ZeroDivisionError("mul_div denominator is zero.")
    return (a * b) // denominator
