from collections import defaultdict
from typing import Callable, Dict, Optional, Set, Tuple

from loguru import logger

from curve_market.common.exceptions import InsufficientBalance, InvalidInput, TransferFailed
from curve_market.common.model import Token
from curve_market.ledger.base import PaymentLedger, TokenLedger


ReceiveHook = Callable[[str, int], None]


def _check_amount(amount: int):
    if amount < 0:
        raise InvalidInput("Amount cannot be negative.", context={"amount": amount})


class InMemoryTokenLedger(TokenLedger):
    """Dictionary-backed token ledger."""

    def __init__(self, token: Token):
        self.token = token
        self._balances: Dict[str, int] = defaultdict(int)
        self._total_supply = 0

    def mint(self, account: str, amount: int) -> None:
        _check_amount(amount)
        self._balances[account] += amount
        self._total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        _check_amount(amount)
        balance = self._balances[account]
        if balance < amount:
            raise InsufficientBalance(
                f"Cannot burn {amount} from {account}; balance is {balance}.",
                context={"account": account, "balance": balance, "amount": amount}
            )
        self._balances[account] = balance - amount
        self._total_supply -= amount

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        return self._total_supply

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        _check_amount(amount)
        balance = self._balances[sender]
        if balance < amount:
            raise InsufficientBalance(
                f"Cannot transfer {amount} from {sender}; balance is {balance}.",
                context={"account": sender, "balance": balance, "amount": amount}
            )
        self._balances[sender] = balance - amount
        self._balances[recipient] += amount

    def snapshot(self) -> Tuple[Dict[str, int], int]:
        return dict(self._balances), self._total_supply

    def restore(self, snapshot: Tuple[Dict[str, int], int]) -> None:
        balances, total_supply = snapshot
        self._balances = defaultdict(int, balances)
        self._total_supply = total_supply


class InMemoryPaymentLedger(PaymentLedger):
    """
    Dictionary-backed payment asset ledger.

    Recipients can be marked as rejecting (every inbound transfer fails) or given a receive hook,
    which runs after funds arrive and works like a contract's fallback: if the hook raises, the
    transfer (and any transfer the hook made) is undone and reported as TransferFailed.
    """

    def __init__(self):
        self._balances: Dict[str, int] = defaultdict(int)
        self._rejecting: Set[str] = set()
        self._hooks: Dict[str, ReceiveHook] = {}

    def deposit(self, account: str, amount: int) -> None:
        """Credits 'account' from outside the system (faucet / on-ramp)."""
        _check_amount(amount)
        self._balances[account] += amount

    def reject_transfers_to(self, account: str, reject: bool = True) -> None:
        if reject:
            self._rejecting.add(account)
        else:
            self._rejecting.discard(account)

    def set_receive_hook(self, account: str, hook: Optional[ReceiveHook]) -> None:
        if hook is None:
            self._hooks.pop(account, None)
        else:
            self._hooks[account] = hook

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        _check_amount(amount)
        balance = self._balances[sender]
        if balance < amount:
            raise TransferFailed(
                f"Transfer of {amount} from {sender} to {recipient} failed; balance is {balance}.",
                context={"sender": sender, "recipient": recipient, "amount": amount}
            )
        if recipient in self._rejecting:
            raise TransferFailed(
                f"Recipient {recipient} rejected a transfer of {amount}.",
                context={"sender": sender, "recipient": recipient, "amount": amount}
            )

        hook = self._hooks.get(recipient)
        before = self.snapshot() if hook is not None else None
        self._balances[sender] = balance - amount
        self._balances[recipient] += amount
        if hook is None:
            return

        # the hook may move funds itself, so a failure restores everything it touched
        try:
            hook(sender, amount)
        except Exception as e:
            self.restore(before)
            logger.warning(f"Receive hook of {recipient} failed, transfer of {amount} undone: {e}")
            raise TransferFailed(
                f"Recipient {recipient} failed while receiving {amount}.",
                context={"sender": sender, "recipient": recipient, "amount": amount}
            ) from e

    def snapshot(self) -> Dict[str, int]:
        return dict(self._balances)

    def restore(self, snapshot: Dict[str, int]) -> None:
        self._balances = defaultdict(int, snapshot)
