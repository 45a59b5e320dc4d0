import itertools
from datetime import datetime
from typing import Callable, Dict, List, Optional

from loguru import logger

from curve_market.common.model import Genesis, MarketParams
from curve_market.ledger.base import PaymentLedger
from curve_market.ledger.memory import InMemoryPaymentLedger
from curve_market.trading.market import Market


class MarketFactory:
    """
    Deploys markets and records which account created each one.
    All markets created by one factory share its payment ledger.
    """

    def __init__(
        self,
        payment_ledger: Optional[PaymentLedger] = None,
        default_params: Optional[MarketParams] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.payment_ledger = payment_ledger or InMemoryPaymentLedger()
        self.default_params = default_params or MarketParams()
        self._clock = clock
        self._markets: Dict[str, Market] = {}
        self._creators: Dict[str, str] = {}
        self._counter = itertools.count(1)

    def create_market(
        self,
        creator: str,
        name: str,
        symbol: str,
        fee_collector: str,
        params: Optional[MarketParams] = None,
    ) -> Market:
        genesis = Genesis(creator=creator, name=name, symbol=symbol, fee_collector=fee_collector)
        address = f"market-{next(self._counter)}"
        market = Market(
            genesis,
            params=params or self.default_params,
            payment_ledger=self.payment_ledger,
            address=address,
            clock=self._clock,
        )
        self._markets[address] = market
        self._creators[address] = creator
        logger.info(f"Factory registered {address} ({symbol}) for creator {creator}")
        return market

    def get_market(self, address: str) -> Market:
        try:
            return self._markets[address]
        except KeyError:
            raise KeyError(f"No market at {address}") from None

    def creator_of(self, address: str) -> str:
        try:
            return self._creators[address]
        except KeyError:
            raise KeyError(f"No market at {address}") from None

    def all_markets(self) -> List[Market]:
        return list(self._markets.values())

    def markets_by_creator(self, creator: str) -> List[Market]:
        return [self._markets[address] for address, owner in self._creators.items() if owner == creator]

    def __len__(self):
        return len(self._markets)
