import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from curve_market.common.exceptions import ReentrantCall
from curve_market.common.model import MarketEvent


class TransactionJournal:
    """
    Collects undo steps for every effect a market operation applies, plus the events it will emit.
    Undo steps run in reverse order on rollback; events are only handed out after commit.
    """

    def __init__(self):
        self._undo: List[Callable[[], None]] = []
        self.events: List[MarketEvent] = []

    def record(self, undo: Callable[[], None]) -> None:
        self._undo.append(undo)

    def emit(self, event: MarketEvent) -> None:
        self.events.append(event)

    def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()
        self.events.clear()


class NonReentrantGuard:
    """
    Exclusive guard held for the whole of a buy / sell call.

    Re-entry from the thread that holds the guard (e.g. from a payout's receive hook) raises
    ReentrantCall. Other threads block until the guard is released.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._owner: Optional[int] = None

    @property
    def entered(self) -> bool:
        return self._owner is not None

    @contextmanager
    def hold(self) -> Iterator[None]:
        if self._owner == threading.get_ident():
            raise ReentrantCall(f"Reentrant call into {self.name} rejected.", context={"market": self.name})
        with self._lock:
            self._owner = threading.get_ident()
            try:
                yield
            finally:
                self._owner = None


@contextmanager
def atomic(*ledgers) -> Iterator[TransactionJournal]:
    """
    Yields a journal and unwinds it if the block raises.

    Each ledger passed in is snapshotted on entry and restored as the last rollback step, which
    also reverts transfers made from receive hooks that the journal never saw.
    """
    journal = TransactionJournal()
    for ledger in ledgers:
        snapshot = ledger.snapshot()
        journal.record(lambda ledger=ledger, snapshot=snapshot: ledger.restore(snapshot))
    try:
        yield journal
    except Exception:
        journal.rollback()
        raise
