from abc import ABC, abstractmethod
from typing import Any


class TokenLedger(ABC):
    """
    The fungible-token bookkeeping a market trusts for its own token: mint, burn, balances, supply.
    All amounts are integers in smallest units.
    """

    @abstractmethod
    def mint(self, account: str, amount: int) -> None:
        pass

    @abstractmethod
    def burn(self, account: str, amount: int) -> None:
        """Removes 'amount' from 'account'. Raises InsufficientBalance if the account holds less."""
        pass

    @abstractmethod
    def balance_of(self, account: str) -> int:
        pass

    @abstractmethod
    def total_supply(self) -> int:
        pass

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        pass

    @abstractmethod
    def snapshot(self) -> Any:
        """Opaque copy of every balance and the supply, for restore()."""
        pass

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        pass


class PaymentLedger(ABC):
    """
    Balances of the payment asset (the ETH-equivalent buyers pay with and sellers are paid in).
    """

    @abstractmethod
    def balance_of(self, account: str) -> int:
        pass

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Moves 'amount' from 'sender' to 'recipient'.
        Raises TransferFailed if the transfer cannot complete; balances are then left untouched,
        including anything a receive hook moved before failing.
        """
        pass

    @abstractmethod
    def snapshot(self) -> Any:
        """Opaque copy of every balance, for restore()."""
        pass

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        """
        Puts every balance back to the given snapshot without notifying any account.
        Used to roll back an aborted market operation, together with any transfers
        made from receive hooks while it ran.
        """
        pass
