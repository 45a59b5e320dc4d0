from datetime import datetime, timedelta
from typing import Callable, List, Optional

from loguru import logger

from curve_market.common.enums import MarketEventType, OrderSide
from curve_market.common.exceptions import (
    CooldownActive,
    ExceedsSellLimit,
    InsufficientBalance,
    InvalidInput,
    MarketExhausted,
)
from curve_market.common.model import (
    Genesis,
    MarketEvent,
    MarketParams,
    MarketState,
    Token,
    TransactionRequest,
    TransactionResult,
)
from curve_market.curves.single.inverse import InverseBondingCurve
from curve_market.curves.utils.inverse_curve_helper import InverseCurveHelper as helper
from curve_market.ledger.base import PaymentLedger, TokenLedger
from curve_market.ledger.memory import InMemoryPaymentLedger, InMemoryTokenLedger
from curve_market.trading.guard import NonReentrantGuard, TransactionJournal, atomic


EventCallback = Callable[[MarketEvent], None]


class Market:
    """
        A single-asset market making its own token along an InverseBondingCurve.

        Trading rules:
          - buy: price quoted at the pre-mint supply; tokens are clamped to the remaining capacity
            (partial fill, the unfilled part of the payment is not refunded); the protocol fee is
            taken from the full payment.
          - sell: rejected while the seller's cooldown runs (boundary inclusive) or when the amount
            is above max_sell_percent of the current supply; priced at the pre-burn supply.
          - every fee goes to the fee collector fixed at genesis.

        Each buy / sell runs under a non-reentrant guard and a transaction journal: a failure at
        any point (including the final payouts) restores supply, balances, cooldowns and the fee
        accumulator, and no events are published.
    """

    def __init__(
        self,
        genesis: Genesis,
        params: Optional[MarketParams] = None,
        token_ledger: Optional[TokenLedger] = None,
        payment_ledger: Optional[PaymentLedger] = None,
        address: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        :param genesis: Genesis - creator, token name / symbol and fee collector
        :param params: MarketParams - curve constants and trading limits
        :param token_ledger: TokenLedger - bookkeeping for this market's token
        :param payment_ledger: PaymentLedger - balances of the payment asset, shared with traders
        :param address: str - the market's own account on the payment ledger
        :param clock: callable returning the current time, used for sell cooldowns
        """
        self.genesis = genesis
        self._params = params or MarketParams()
        self.curve = InverseBondingCurve(self._params)
        self.address = address or f"market:{genesis.symbol}"
        self.token_ledger = token_ledger or InMemoryTokenLedger(Token(genesis.name, genesis.symbol))
        self.payment_ledger = payment_ledger or InMemoryPaymentLedger()
        self._clock = clock or datetime.now
        self._state = MarketState()
        self._guard = NonReentrantGuard(self.address)
        self._events: List[MarketEvent] = []
        self._subscribers: List[EventCallback] = []

        allocation = self._params.creator_allocation
        if allocation > 0:
            self.token_ledger.mint(genesis.creator, allocation)
        logger.info(
            f"Market {self.address} ({genesis.symbol}) created by {genesis.creator}, "
            f"{allocation} allocated to creator, fees to {genesis.fee_collector}"
        )

    @property
    def params(self) -> MarketParams:
        return self._params

    @property
    def fee_collector(self) -> str:
        return self.genesis.fee_collector

    @property
    def outstanding_supply(self) -> int:
        return self.token_ledger.total_supply()

    @property
    def total_fee_collected(self) -> int:
        return self._state.total_fee_collected

    @property
    def events(self) -> List[MarketEvent]:
        return list(self._events)

    def subscribe(self, callback: EventCallback) -> None:
        self._subscribers.append(callback)

    def current_price(self) -> int:
        return self.curve.get_spot_price(self.outstanding_supply)

    def held_balance(self) -> int:
        """Payment asset currently held by the market."""
        return self.payment_ledger.balance_of(self.address)

    def balance_of(self, account: str) -> int:
        return self.token_ledger.balance_of(account)

    def max_sell_amount(self) -> int:
        return helper.sell_cap(self.outstanding_supply, self._params.max_sell_percent)

    def last_sell_time_of(self, account: str) -> Optional[datetime]:
        return self._state.last_sell_time.get(account)

    def total_sold_by(self, account: str) -> int:
        return self._state.total_sold.get(account, 0)

    def cooldown_remaining(self, account: str) -> timedelta:
        last = self._state.last_sell_time.get(account)
        if last is None:
            return timedelta(0)
        return max(last + self._params.sell_cooldown - self._clock(), timedelta(0))

    def quote_buy(self, payment: int) -> TransactionResult:
        """Previews a buy of 'payment' without executing it."""
        supply = self.outstanding_supply
        self._check_buy(payment, supply)
        unit_price = self.curve.get_spot_price(supply)
        token_amount = helper.clamp_to_capacity(
            self.curve.quote_tokens_for_payment(supply, payment), supply, self._params.max_supply
        )
        fee, _ = helper.split_fee(payment, self._params.fee_percent)
        logger.debug(f"Quote buy on {self.address}: {payment} -> {token_amount} at {unit_price}")
        return TransactionResult(
            order_type=OrderSide.BUY,
            account="",
            executed_amount=token_amount,
            payment=payment,
            unit_price=unit_price,
            protocol_fee=fee,
            net_amount=payment,
            new_supply=supply + token_amount,
            timestamp=self._clock(),
        )

    def quote_sell(self, amount: int) -> TransactionResult:
        """Previews the proceeds of selling 'amount' at the current supply. Account limits are not checked."""
        if amount <= 0:
            raise InvalidInput("Sell amount must be positive.", context={"amount": amount})
        supply = self.outstanding_supply
        unit_price = self.curve.get_spot_price(supply)
        gross = self.curve.quote_proceeds_for_amount(supply, amount)
        fee, net = helper.split_fee(gross, self._params.fee_percent)
        logger.debug(f"Quote sell on {self.address}: {amount} -> {net} (+{fee} fee) at {unit_price}")
        return TransactionResult(
            order_type=OrderSide.SELL,
            account="",
            executed_amount=amount,
            payment=gross,
            unit_price=unit_price,
            protocol_fee=fee,
            net_amount=net,
            new_supply=supply - amount,
            timestamp=self._clock(),
        )

    def trade(self, request: TransactionRequest) -> TransactionResult:
        if request.order_type == OrderSide.BUY:
            return self.buy(request.account, request.amount)
        return self.sell(request.account, request.amount)

    def receive(self, sender: str, payment: int) -> TransactionResult:
        """A plain payment sent to the market is a buy."""
        return self.buy(sender, payment)

    def buy(self, buyer: str, payment: int) -> TransactionResult:
        """
        Buys tokens with 'payment' (smallest payment units) on behalf of 'buyer'.

        :raises InvalidInput: payment is not positive
        :raises MarketExhausted: outstanding supply already equals max supply
        :raises TransferFailed: the payment or the fee payout could not be transferred
        """
        try:
            with self._guard.hold(), atomic(self.token_ledger, self.payment_ledger) as journal:
                result = self._execute_buy(buyer, payment, journal)
        except Exception as e:
            logger.warning(f"Buy of {payment} by {buyer} on {self.address} reverted: {e}")
            raise

        self._publish(journal)
        logger.info(
            f"{buyer} bought {result.executed_amount} on {self.address} at {result.unit_price} "
            f"(paid {payment}, fee {result.protocol_fee})"
        )
        return result

    def sell(self, seller: str, amount: int) -> TransactionResult:
        """
        Sells 'amount' tokens (smallest units) owned by 'seller' back to the market.

        :raises InvalidInput: amount is not positive
        :raises InsufficientBalance: seller holds less than 'amount'
        :raises CooldownActive: the seller's previous sell is more recent than the cooldown
        :raises ExceedsSellLimit: amount is above max_sell_percent of the current supply
        :raises TransferFailed: proceeds or fee could not be paid out
        """
        try:
            with self._guard.hold(), atomic(self.token_ledger, self.payment_ledger) as journal:
                result = self._execute_sell(seller, amount, journal)
        except Exception as e:
            logger.warning(f"Sell of {amount} by {seller} on {self.address} reverted: {e}")
            raise

        self._publish(journal)
        logger.info(
            f"{seller} sold {amount} on {self.address} at {result.unit_price} "
            f"(received {result.net_amount}, fee {result.protocol_fee})"
        )
        return result

    def _check_buy(self, payment: int, supply: int):
        if payment <= 0:
            raise InvalidInput("Payment must be positive.", context={"payment": payment})
        if supply >= self._params.max_supply:
            raise MarketExhausted(
                "Max supply reached; cannot buy more tokens.",
                context={"supply": supply, "max_supply": self._params.max_supply}
            )

    def _execute_buy(self, buyer: str, payment: int, journal: TransactionJournal) -> TransactionResult:
        supply = self.outstanding_supply
        self._check_buy(payment, supply)

        # 1) Quote at the pre-mint supply, partial fill at the cap
        unit_price = self.curve.get_spot_price(supply)
        token_amount = helper.clamp_to_capacity(
            self.curve.quote_tokens_for_payment(supply, payment), supply, self._params.max_supply
        )
        fee, _ = helper.split_fee(payment, self._params.fee_percent)
        now = self._clock()

        # 2) Take the payment in
        self.payment_ledger.transfer(buyer, self.address, payment)

        # 3) Mint and account for the fee
        self.token_ledger.mint(buyer, token_amount)
        self._accumulate_fee(fee, journal)

        # 4) Payout last
        self._payout(self.fee_collector, fee)

        journal.emit(MarketEvent(MarketEventType.FEE_COLLECTED, {"amount": fee}, now))
        journal.emit(MarketEvent(
            MarketEventType.BOUGHT,
            {"buyer": buyer, "amount": token_amount, "unit_price": unit_price},
            now
        ))
        return TransactionResult(
            order_type=OrderSide.BUY,
            account=buyer,
            executed_amount=token_amount,
            payment=payment,
            unit_price=unit_price,
            protocol_fee=fee,
            net_amount=payment,
            new_supply=self.outstanding_supply,
            timestamp=now,
        )

    def _execute_sell(self, seller: str, amount: int, journal: TransactionJournal) -> TransactionResult:
        if amount <= 0:
            raise InvalidInput("Sell amount must be positive.", context={"amount": amount})

        balance = self.token_ledger.balance_of(seller)
        if balance < amount:
            raise InsufficientBalance(
                f"{seller} holds {balance}, cannot sell {amount}.",
                context={"account": seller, "balance": balance, "amount": amount}
            )

        now = self._clock()
        last = self._state.last_sell_time.get(seller)
        if last is not None and now < last + self._params.sell_cooldown:
            raise CooldownActive(
                f"{seller} must wait until {last + self._params.sell_cooldown} to sell again.",
                context={"account": seller, "last_sell_time": last.isoformat()}
            )

        supply = self.outstanding_supply
        cap = helper.sell_cap(supply, self._params.max_sell_percent)
        if amount > cap:
            raise ExceedsSellLimit(
                f"Sell of {amount} exceeds the per-transaction limit of {cap}.",
                context={"amount": amount, "limit": cap, "supply": supply}
            )

        # 1) Quote at the pre-burn supply
        unit_price = self.curve.get_spot_price(supply)
        gross = self.curve.quote_proceeds_for_amount(supply, amount)
        fee, net = helper.split_fee(gross, self._params.fee_percent)

        # 2) Burn and update bookkeeping
        self.token_ledger.burn(seller, amount)
        self._record_sell(seller, amount, now, journal)
        self._accumulate_fee(fee, journal)

        # 3) Payouts last
        self._payout(seller, net)
        self._payout(self.fee_collector, fee)

        journal.emit(MarketEvent(MarketEventType.FEE_COLLECTED, {"amount": fee}, now))
        journal.emit(MarketEvent(
            MarketEventType.SOLD,
            {"seller": seller, "amount": amount, "unit_price": unit_price},
            now
        ))
        return TransactionResult(
            order_type=OrderSide.SELL,
            account=seller,
            executed_amount=amount,
            payment=gross,
            unit_price=unit_price,
            protocol_fee=fee,
            net_amount=net,
            new_supply=self.outstanding_supply,
            timestamp=now,
        )

    def _record_sell(self, seller: str, amount: int, now: datetime, journal: TransactionJournal):
        previous_time = self._state.last_sell_time.get(seller)
        previous_sold = self._state.total_sold.get(seller, 0)
        self._state.last_sell_time[seller] = now
        self._state.total_sold[seller] = previous_sold + amount

        def undo():
            if previous_time is None:
                self._state.last_sell_time.pop(seller, None)
            else:
                self._state.last_sell_time[seller] = previous_time
            self._state.total_sold[seller] = previous_sold
            if previous_sold == 0:
                self._state.total_sold.pop(seller, None)

        journal.record(undo)

    def _accumulate_fee(self, fee: int, journal: TransactionJournal):
        self._state.total_fee_collected += fee

        def undo():
            self._state.total_fee_collected -= fee

        journal.record(undo)

    def _payout(self, recipient: str, amount: int):
        if amount == 0:
            return
        self.payment_ledger.transfer(self.address, recipient, amount)

    def _publish(self, journal: TransactionJournal):
        # the trade has committed, a failing subscriber must not change its outcome
        self._events.extend(journal.events)
        for event in journal.events:
            for callback in self._subscribers:
                try:
                    callback(event)
                except Exception:
                    logger.exception(f"Subscriber {callback!r} failed on {event.event_type} from {self.address}")
