from curve_market.common.model import MarketParams
from curve_market.curves.single.base import BondingCurve
from curve_market.curves.utils.inverse_curve_helper import InverseCurveHelper as helper


class InverseBondingCurve(BondingCurve):
    """
        An inverse bonding curve: price is highest while supply is scarce and falls towards
        initial_unit_price as supply approaches max_supply.

        The formula for the unit price is:
          price(s) = min(initial_unit_price * max_supply / (s + 1), max_unit_price)

        Everything is integer arithmetic in smallest units, so quotes and executed quantities
        agree exactly with the ledger.
    """

    def __init__(self, params: MarketParams):
        super().__init__(params)

    def get_spot_price(self, supply: int) -> int:
        raw = helper.raw_price(supply, self.params.initial_unit_price, self.params.max_supply)
        return helper.clamp_price(raw, self.params.max_unit_price)

    def quote_tokens_for_payment(self, supply: int, payment: int) -> int:
        return helper.tokens_for_payment(payment, self.get_spot_price(supply))

    def quote_proceeds_for_amount(self, supply: int, amount: int) -> int:
        return helper.proceeds_for_amount(amount, self.get_spot_price(supply))
