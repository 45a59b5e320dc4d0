import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from curve_market.common.enums import MarketEventType, OrderSide
from curve_market.common.math import UNIT_DECIMALS, UNIT_SCALE


@dataclass
class Token:
    """Represents the token whose price is determined by the bonding curve."""
    name: str
    symbol: str
    decimals: int = UNIT_DECIMALS


@dataclass
class Genesis:
    """Deployment-time identities of a market. Fixed for the lifetime of the market."""
    creator: str
    name: str
    symbol: str
    fee_collector: str

    def __post_init__(self):
        for attr in ("creator", "name", "symbol", "fee_collector"):
            if not getattr(self, attr):
                raise ValueError(f"Genesis '{attr}' must be non-empty.")


@dataclass
class MarketParams:
    """
    Constants of a market's price curve and trading limits.

    All amounts are integers in smallest units (UNIT_SCALE per whole token / whole payment unit).
    """
    max_supply: int = 1_000_000 * UNIT_SCALE
    initial_unit_price: int = 10 ** 14
    max_unit_price: int = 10 ** 16
    fee_percent: int = 5
    max_sell_percent: int = 20
    sell_cooldown: timedelta = timedelta(hours=1)
    creator_allocation_percent: int = 20

    def __post_init__(self):
        if self.max_supply <= 0:
            raise ValueError("Max supply must be positive.")
        if self.initial_unit_price <= 0:
            raise ValueError("Initial unit price must be positive.")
        if self.max_unit_price < self.initial_unit_price:
            raise ValueError("Max unit price must be >= initial unit price.")
        if not 0 <= self.fee_percent < 100:
            raise ValueError("Fee percent must be in [0, 100).")
        if not 0 < self.max_sell_percent <= 100:
            raise ValueError("Max sell percent must be in (0, 100].")
        if self.sell_cooldown < timedelta(0):
            raise ValueError("Sell cooldown must be non-negative.")
        if not 0 <= self.creator_allocation_percent <= 100:
            raise ValueError("Creator allocation percent must be in [0, 100].")

    @property
    def creator_allocation(self) -> int:
        return self.max_supply * self.creator_allocation_percent // 100

    @classmethod
    def from_env(cls) -> "MarketParams":
        """Create market params from CURVE_MARKET_* environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            max_supply=int(os.getenv("CURVE_MARKET_MAX_SUPPLY", str(defaults.max_supply))),
            initial_unit_price=int(os.getenv("CURVE_MARKET_INITIAL_UNIT_PRICE", str(defaults.initial_unit_price))),
            max_unit_price=int(os.getenv("CURVE_MARKET_MAX_UNIT_PRICE", str(defaults.max_unit_price))),
            fee_percent=int(os.getenv("CURVE_MARKET_FEE_PERCENT", str(defaults.fee_percent))),
            max_sell_percent=int(os.getenv("CURVE_MARKET_MAX_SELL_PERCENT", str(defaults.max_sell_percent))),
            sell_cooldown=timedelta(seconds=int(os.getenv(
                "CURVE_MARKET_SELL_COOLDOWN_SECONDS",
                str(int(defaults.sell_cooldown.total_seconds()))
            ))),
            creator_allocation_percent=int(os.getenv(
                "CURVE_MARKET_CREATOR_ALLOCATION_PERCENT",
                str(defaults.creator_allocation_percent)
            )),
        )


@dataclass
class MarketState:
    """Tracks the mutable bookkeeping of a market that is not held by the ledgers."""
    total_fee_collected: int = 0
    last_sell_time: Dict[str, datetime] = field(default_factory=dict)
    total_sold: Dict[str, int] = field(default_factory=dict)


@dataclass
class TransactionRequest:
    """Represents a discrete purchase (amount = payment) or sale (amount = tokens) request."""
    account: str
    order_type: OrderSide
    amount: int = 0


@dataclass
class TransactionResult:
    """Outcome of a transaction."""
    order_type: OrderSide
    account: str
    executed_amount: int
    payment: int
    unit_price: int
    protocol_fee: int
    net_amount: int
    new_supply: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_type": str(self.order_type),
            "account": self.account,
            "executed_amount": self.executed_amount,
            "payment": self.payment,
            "unit_price": self.unit_price,
            "protocol_fee": self.protocol_fee,
            "net_amount": self.net_amount,
            "new_supply": self.new_supply,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class MarketEvent:
    """An externally observable event emitted by a committed trade."""
    event_type: MarketEventType
    args: Dict[str, Any] = field(default_factory=dict)
    timestamp: Optional[datetime] = None
