from abc import ABC, abstractmethod

from curve_market.common.model import MarketParams


class BondingCurve(ABC):
    """Abstract base class defining the interface for any bonding curve implementation."""
    def __init__(self, params: 'MarketParams'):
        """
        Initializes the bonding curve with the market's constant parameters.

        :param params: MarketParams - defines curve configuration
        """
        self._params = params

    @property
    def params(self) -> 'MarketParams':
        """Returns the bonding curve parameters."""
        return self._params

    @abstractmethod
    def get_spot_price(self, supply: int) -> int:
        """
        Returns the unit price for a given outstanding supply.

        :param supply: int - Current outstanding supply, in smallest units.
        :return: int: Price of one whole token, in smallest payment units.
        """
        pass

    @abstractmethod
    def quote_tokens_for_payment(self, supply: int, payment: int) -> int:
        """
        Calculates how many tokens (smallest units) 'payment' buys at the price quoted for 'supply'.

        :param supply: int - Outstanding supply before the buy.
        :param payment: int - Payment, in smallest payment units.
        :return: Token amount, before any max supply clamping.
        """
        pass

    @abstractmethod
    def quote_proceeds_for_amount(self, supply: int, amount: int) -> int:
        """
        Calculates the gross value returned for selling 'amount' tokens at the price quoted for 'supply'.

        :param supply: int - Outstanding supply before the sell.
        :param amount: int - Number of tokens (smallest units) the user wants to sell.
        :return: Gross proceeds, before protocol fees.
        """
        pass
