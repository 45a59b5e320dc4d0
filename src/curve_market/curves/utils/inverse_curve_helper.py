from typing import Tuple

from curve_market.common.exceptions import InvalidInput
from curve_market.common.math import UNIT_SCALE, mul_div


class InverseCurveHelper:
    """A separate helper class for the integer arithmetic used by InverseBondingCurve and Market."""

    @staticmethod
    def raw_price(supply: int, initial_unit_price: int, max_supply: int) -> int:
        """
        Unclamped inverse curve:
            price = initial_unit_price * max_supply / (supply + 1)
        The +1 keeps the quote finite at zero supply.
        """
        if supply < 0:
            raise InvalidInput("Supply cannot be negative.", context={"supply": supply})
        return mul_div(initial_unit_price, max_supply, supply + 1)

    @staticmethod
    def clamp_price(price: int, max_unit_price: int) -> int:
        return min(price, max_unit_price)

    @staticmethod
    def tokens_for_payment(payment: int, unit_price: int) -> int:
        """payment * UNIT_SCALE / unit_price, floored."""
        return mul_div(payment, UNIT_SCALE, unit_price)

    @staticmethod
    def proceeds_for_amount(amount: int, unit_price: int) -> int:
        """amount * unit_price / UNIT_SCALE, floored."""
        return mul_div(amount, unit_price, UNIT_SCALE)

    @staticmethod
    def split_fee(gross: int, fee_percent: int) -> Tuple[int, int]:
        """
        Splits 'gross' into (fee, net). The fee is floored, so truncation dust stays with the trader
        and fee + net == gross always holds.
        """
        fee = gross * fee_percent // 100
        return fee, gross - fee

    @staticmethod
    def clamp_to_capacity(amount: int, supply: int, max_supply: int) -> int:
        """
        Partial fill at the supply cap: returns the largest amount <= 'amount' that keeps
        supply + amount <= max_supply.
        """
        remaining = max_supply - supply
        if remaining <= 0:
            return 0
        return min(amount, remaining)

    @staticmethod
    def sell_cap(supply: int, max_sell_percent: int) -> int:
        return supply * max_sell_percent // 100
